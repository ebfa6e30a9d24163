"""Regression diagnostics toolbox for the surgical unit survival-time data."""
