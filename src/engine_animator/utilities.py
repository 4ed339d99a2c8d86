"""
Utilities Module
Unit conversion for display values and summary statistics for traces.
"""

from typing import Dict, List

import numpy as np


class UnitConverter:
    """
    Unit conversion utilities.

    The turbocharger works in psi and °F, as the gauges display them;
    these helpers give the SI equivalents.
    """

    CONVERSIONS = {
        # Pressure
        "psi_to_pa": 6894.757293168,  # exact
        "pa_to_psi": 1.0 / 6894.757293168,
        "bar_to_pa": 1.0e5,
        "pa_to_bar": 1.0e-5,
    }

    @staticmethod
    def pressure_to_si(value: float, from_unit: str) -> float:
        """Convert pressure to Pascals"""
        if from_unit == "psi":
            return value * UnitConverter.CONVERSIONS["psi_to_pa"]
        elif from_unit == "bar":
            return value * UnitConverter.CONVERSIONS["bar_to_pa"]
        elif from_unit == "pa":
            return value
        else:
            raise ValueError(f"Unknown pressure unit: {from_unit}")

    @staticmethod
    def pressure_from_si(value: float, to_unit: str) -> float:
        """Convert pressure from Pascals"""
        if to_unit == "psi":
            return value * UnitConverter.CONVERSIONS["pa_to_psi"]
        elif to_unit == "bar":
            return value * UnitConverter.CONVERSIONS["pa_to_bar"]
        elif to_unit == "pa":
            return value
        else:
            raise ValueError(f"Unknown pressure unit: {to_unit}")

    @staticmethod
    def psi_to_bar(value: float) -> float:
        return UnitConverter.pressure_from_si(
            UnitConverter.pressure_to_si(value, "psi"), "bar"
        )

    @staticmethod
    def fahrenheit_to_celsius(temp_f: float) -> float:
        """Convert Fahrenheit to Celsius"""
        return (temp_f - 32.0) * 5.0 / 9.0


def calculate_statistics(data: List[float]) -> Dict[str, float]:
    """
    Calculate basic statistics for a data series.

    Args:
        data: List or array of numerical data

    Returns:
        Dictionary of statistics

    Raises:
        ValueError: If data is empty
    """
    data_array = np.array(data, dtype=float)
    if data_array.size == 0:
        raise ValueError("No data to summarise")

    stats = {
        "mean": float(np.mean(data_array)),
        "std": float(np.std(data_array, ddof=0)),
        "min": float(np.min(data_array)),
        "max": float(np.max(data_array)),
        "median": float(np.median(data_array)),
        "range": float(np.max(data_array) - np.min(data_array)),  # peak-to-peak
    }

    return stats
