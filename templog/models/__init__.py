from .image_data import (
    ImageErrorKind,
    ImageFailure,
    ImageProcessingOptions,
    ProcessedImage,
    ProcessingProfile,
)
from .temperature import TemperatureCreate, TemperatureRecord, TemperatureStats

__all__ = [
    "ImageErrorKind",
    "ImageFailure",
    "ImageProcessingOptions",
    "ProcessedImage",
    "ProcessingProfile",
    "TemperatureCreate",
    "TemperatureRecord",
    "TemperatureStats",
]
