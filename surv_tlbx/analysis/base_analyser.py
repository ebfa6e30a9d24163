"""Base analyzer class for all analysis components in the toolbox."""

from abc import ABC, abstractmethod
from typing import Any


class BaseAnalyser(ABC):
    """Abstract base class for analysis components.

    All analyzers must:
    1. Accept their input (a ``DatasetView``, a dataset or a fitted model) in the constructor
    2. Implement fit() to perform the analysis and return self for chaining
    3. Implement result() to return a frozen dataclass with results

    ---

    ### Adding a New Analyzer

    ```python
    @dataclass(frozen=True)
    class MyAnalysisResult:
        '''Results package for MyAnalyzer.'''
        table: pd.DataFrame

    class MyAnalyzer(BaseAnalyser):
        '''Pure computation analyzer (no plotting!).'''

        def __init__(self, view: DatasetView):
            self._view = view
            self._table: pd.DataFrame | None = None

        def fit(self) -> "MyAnalyzer":
            self._table = ...
            return self

        def result(self) -> MyAnalysisResult:
            if self._table is None:
                raise ValueError("Must call fit() before result()")
            return MyAnalysisResult(table=self._table)
    ```

    Plotting helpers live in ``surv_tlbx.plotting`` and accept the ``*Result``
    dataclasses, returning ``Figure`` or ``Axes`` objects.
    """

    @abstractmethod
    def fit(self) -> "BaseAnalyser":
        """Fit the analyzer to the data.

        Returns:
            Self for method chaining.
        """
        ...

    @abstractmethod
    def result(self) -> Any:
        """Return analysis results as a frozen dataclass instance.

        Raises:
            ValueError: If fit() has not been called yet.
        """
        ...
