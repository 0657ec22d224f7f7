"""
GPU backend for the skipped-correlation pipeline.

GPU accelerates the bootstrap replicates, which dominate the cost: the
nboot resamples of a pair are gathered and correlated as torch batches,
blocked like the numpy kernel.
Outlier detection (FAST-MCD) and the multiplicity correction stay on the
CPU, so the pipeline itself is delegated to the CPU backend.

FP64 on CUDA, FP32 on MPS (which has no double precision).
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import NDArray

from pyrobcorr.core.compute.device import DeviceInfo
from pyrobcorr.core.result import Result
from pyrobcorr.skipped import _engine
from pyrobcorr.skipped._common import SkippedCorrParams
from pyrobcorr.skipped.design import SkippedCorrDesign


class GPUSkippedCorrBackend:
    """
    GPU backend for skipped Pearson correlations.

    Parameters
    ----------
    device : DeviceInfo, optional
        Device from select_device('gpu'). If None, auto-selects.
    n_jobs : int
        Worker threads across pairs, as for the CPU backend.
    """

    def __init__(self, device: DeviceInfo | None = None, n_jobs: int = 1):
        import torch

        self._torch = torch

        if device is not None:
            if device.device_type == 'cuda':
                self.device = torch.device(f'cuda:{device.device_index or 0}')
            elif device.device_type == 'mps':
                self.device = torch.device('mps')
            else:
                raise ValueError(
                    f"GPUSkippedCorrBackend requires GPU device, got {device.device_type}"
                )
        elif torch.cuda.is_available():
            self.device = torch.device('cuda')
        elif hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
            self.device = torch.device('mps')
        else:
            raise RuntimeError("No GPU available (need CUDA or MPS)")

        self.dtype = torch.float32 if self.device.type == 'mps' else torch.float64
        self.n_jobs = n_jobs

    @property
    def name(self) -> str:
        return f'gpu_{self.device.type}_skipped'

    def bootstrap_r(
        self,
        X: NDArray[np.floating[Any]],
        table: NDArray[np.intp],
        keep: NDArray[np.bool_],
    ) -> NDArray[np.floating[Any]]:
        """Batched bootstrap correlations; same contract and blocking as the numpy kernel."""
        torch = self._torch

        X_gpu = torch.as_tensor(X, device=self.device, dtype=self.dtype)
        rows = max(1, _engine._BOOTSTRAP_BLOCK_ELEMENTS // max(1, int(np.count_nonzero(keep))))

        blocks = []
        for start in range(0, table.shape[0], rows):
            idx = torch.as_tensor(
                np.ascontiguousarray(table[start:start + rows][:, keep]),
                device=self.device, dtype=torch.long,
            )
            Xb = X_gpu[idx]
            Xb = Xb - Xb.mean(dim=1, keepdim=True)
            a = Xb[..., 0]
            b = Xb[..., 1]
            blocks.append(
                (a * b).sum(dim=1) / torch.sqrt((a * a).sum(dim=1) * (b * b).sum(dim=1))
            )
        r = torch.cat(blocks)
        return r.to(dtype=torch.float64).cpu().numpy()

    def solve(self, design: SkippedCorrDesign) -> Result[SkippedCorrParams]:
        """Run the batch with GPU bootstrap replicates."""
        from pyrobcorr.skipped.backends.cpu import CPUSkippedCorrBackend

        cpu = CPUSkippedCorrBackend(
            n_jobs=self.n_jobs,
            bootstrap_kernel=self.bootstrap_r,
            sync_cuda=self.device.type == 'cuda',
        )
        result = cpu.solve(design)

        return Result(
            params=result.params,
            info={**result.info, 'device': str(self.device)},
            timing=result.timing,
            backend_name=self.name,
            warnings=result.warnings,
        )
