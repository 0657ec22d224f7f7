"""
Compute device discovery for the backend selector.

Only the bootstrap kernel runs on a GPU, so all we need to know is
whether torch can see CUDA or MPS. torch is imported lazily; CPU-only
installs never import it.
"""

import platform
from dataclasses import dataclass
from typing import Literal

DeviceType = Literal['cpu', 'cuda', 'mps']
DevicePreference = Literal['cpu', 'gpu', 'auto']


@dataclass(frozen=True)
class DeviceInfo:
    """
    A compute device.

    Attributes:
        device_type: 'cpu', 'cuda' or 'mps'
        device_index: CUDA ordinal; None for CPU and MPS
        name: Human-readable name, for summaries and errors
    """
    device_type: DeviceType
    device_index: int | None
    name: str

    @property
    def is_gpu(self) -> bool:
        return self.device_type != 'cpu'

    def __str__(self) -> str:
        if not self.is_gpu:
            return f"CPU ({self.name})"
        return f"{self.device_type.upper()}:{self.device_index or 0} ({self.name})"


def detect_gpu() -> DeviceInfo | None:
    """First usable GPU (CUDA before MPS), or None."""
    try:
        import torch
    except ImportError:
        return None

    if torch.cuda.is_available():
        ordinal = torch.cuda.current_device()
        return DeviceInfo('cuda', ordinal, torch.cuda.get_device_name(ordinal))

    mps = getattr(torch.backends, 'mps', None)
    if mps is not None and mps.is_available():
        return DeviceInfo('mps', None, 'Apple Silicon GPU')

    return None


def get_cpu_info() -> DeviceInfo:
    return DeviceInfo('cpu', None, platform.processor() or platform.machine() or "unknown")


def select_device(prefer: DevicePreference = 'auto') -> DeviceInfo:
    """
    Resolve a backend preference to a device.

    'cpu' never probes for a GPU; 'auto' falls back to the CPU.

    Raises:
        RuntimeError: If 'gpu' is requested and none is usable.
    """
    if prefer == 'cpu':
        return get_cpu_info()

    gpu = detect_gpu()
    if gpu is not None:
        return gpu
    if prefer == 'gpu':
        raise RuntimeError(
            "backend='gpu' requested but torch sees no CUDA or MPS device; "
            "install the 'gpu' extra on a machine with a supported GPU"
        )
    return get_cpu_info()
