"""
Backend protocol.

A backend turns a validated design into a Result. It is matched
structurally (typing.Protocol), so the GPU backend does not inherit from
the CPU one.
"""

from typing import Protocol, TypeVar, runtime_checkable

from pyrobcorr.core.result import Result

P = TypeVar('P', covariant=True)  # Parameter payload type
D = TypeVar('D', contravariant=True)  # Design type


@runtime_checkable
class Backend(Protocol[D, P]):
    """
    Computes a design on one kind of hardware.

    Options such as the worker count or the device are fixed at
    construction; solve() keeps no state between calls.
    """

    @property
    def name(self) -> str:
        """'{device}_{pipeline}', e.g. 'cpu_skipped' or 'gpu_cuda_skipped'."""
        ...

    def solve(self, design: D) -> Result[P]:
        """
        Run the pipeline on a validated design.

        Raises:
            ValidationError: If the design cannot be processed at all
                (e.g. too few observations to build a resample table).
        """
        ...
