"""
Shared compute infrastructure for pyrobcorr.

Hardware detection and timing utilities shared by the pipeline backends.
Domain-specific backends live in {domain}/backends/, not here.
"""

from pyrobcorr.core.compute.device import (
    DeviceInfo,
    detect_gpu,
    get_cpu_info,
    select_device,
)
from pyrobcorr.core.compute.timing import Timer

__all__ = [
    "DeviceInfo",
    "detect_gpu",
    "get_cpu_info",
    "select_device",
    "Timer",
]
