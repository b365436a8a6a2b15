"""Synthetic WLE-shaped data for tests and offline runs."""

from .generate_sensor_data import SensorDataGenerator

__all__ = ['SensorDataGenerator']
