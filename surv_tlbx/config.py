r"""Significance level and rule-of-thumb thresholds for regression diagnostics.

The cut-offs below are conventions, not laws; every analyzer accepts a
:class:`DiagnosticThresholds` instance so they can be tightened or relaxed.

With :math:`n` observations and :math:`p` estimated coefficients (intercept
included):

- leverage :math:`h_{ii} > 2p/n`
- externally studentized residual :math:`|t_i| > 2`
- :math:`|DFFITS_i| > 2\sqrt{p/n}`
- Cook's distance :math:`D_i > 4/n`
- :math:`|DFBETAS_{ij}| > 2/\sqrt{n}`
- :math:`VIF_j > 10` (5 is a common stricter choice)
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class DiagnosticThresholds:
    """Configurable cut-offs used when flagging assumptions and observations."""

    alpha: float = 0.05
    """Significance level for every hypothesis test."""
    vif: float = 10.0
    """Variance inflation factor above which a predictor is flagged."""
    leverage_factor: float = 2.0
    """Multiplier ``k`` in the leverage cut-off :math:`k p / n`."""
    studentized: float = 2.0
    """Absolute externally studentized residual cut-off."""
    dffits_factor: float = 2.0
    r"""Multiplier ``k`` in :math:`k\sqrt{p/n}`."""
    cooks_numerator: float = 4.0
    """Numerator ``c`` in the Cook's distance cut-off :math:`c/n`."""
    dfbetas_numerator: float = 2.0
    r"""Numerator ``c`` in :math:`c/\sqrt{n}`."""

    def __post_init__(self) -> None:
        if not 0 < self.alpha < 1:
            raise ValueError(f"alpha must lie in (0, 1), got {self.alpha}")
        if self.vif <= 1:
            raise ValueError(f"VIF threshold must exceed 1, got {self.vif}")

    def leverage(self, n_obs: int, n_params: int) -> float:
        return self.leverage_factor * n_params / n_obs

    def dffits(self, n_obs: int, n_params: int) -> float:
        return self.dffits_factor * float(np.sqrt(n_params / n_obs))

    def cooks(self, n_obs: int) -> float:
        return self.cooks_numerator / n_obs

    def dfbetas(self, n_obs: int) -> float:
        return self.dfbetas_numerator / float(np.sqrt(n_obs))


DEFAULT_THRESHOLDS = DiagnosticThresholds()


__all__ = ["DEFAULT_THRESHOLDS", "DiagnosticThresholds"]
