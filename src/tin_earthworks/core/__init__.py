"""Core data structures and algorithms."""

from .terrain import TerrainModel
from .volume import VolumeResult, compute_volume

__all__ = ["TerrainModel", "VolumeResult", "compute_volume"]
