"""
esg_metrics/base.py

Abstract base class for all section-level metric formulas.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseMetricFormula(ABC):
    """
    Contract for ESG section metric formulas.

    Subclasses receive a plain dictionary holding one wizard section snapshot
    (partial data allowed) and must return a plain dictionary of derived
    values.  Numeric metrics are ``float | None``; soft cross-field warnings
    are ``bool``.

    No I/O, no logging, and no side effects are permitted inside
    :meth:`calculate`.
    """

    #: Wizard section the formula reads (``"social"``, ``"governance"``, ...).
    section: str = ""

    @abstractmethod
    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        """
        Compute derived metrics from *inputs* and return a result dictionary.

        Parameters
        ----------
        inputs:
            Section snapshot taken from the wizard form state.

        Returns
        -------
        dict[str, Any]
            Derived metrics and warning flags keyed by name.
        """
