"""Global configuration for mesh-laplacian.

This module provides a package-wide configuration surface to select the
array backend used for per-triangle geometry (NumPy on CPU or CuPy on GPU)
and the default number of assembly workers. It also exposes a dynamic `xp`
proxy that always reflects the current backend, and the package log level.
"""

from __future__ import annotations

from dataclasses import dataclass
import contextlib
import logging
import os
from typing import Any, ContextManager, Iterator, Optional


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
_LOGGER = logging.getLogger("mesh_laplacian.config")
_PACKAGE_LOGGER = logging.getLogger("mesh_laplacian")


def _parse_log_level(val: str | int | None, default: int = logging.WARNING) -> int:
    """Parse a logging level string or int into a `logging` level constant.

    Args:
        val: The desired level (e.g., "DEBUG", 10). May be None.
        default: Fallback level if `val` cannot be parsed.

    Returns:
        An integer logging level (e.g., logging.DEBUG).
    """
    if val is None:
        return default
    if isinstance(val, int):
        return val
    lvl = getattr(logging, str(val).strip().upper(), None)
    if isinstance(lvl, int):
        return lvl
    return default


def set_log_level(level: str | int = "WARNING") -> None:
    """Set the package logger level programmatically.

    Args:
        level: A standard logging level name or integer.
    """
    _PACKAGE_LOGGER.setLevel(_parse_log_level(level))


# Default level can be overridden by env.
set_log_level(os.getenv("MESH_LAPLACIAN_LOGLEVEL", "WARNING"))


# -----------------------------------------------------------------------------
# Env helpers
# -----------------------------------------------------------------------------
def bool_env(varname: str, default: bool) -> bool:
    """Read an environment variable and interpret it as a boolean.

    True values: 'y', 'yes', 't', 'true', 'on', '1'.
    False values: 'n', 'no', 'f', 'false', 'off', '0'.

    Args:
        varname: The name of the environment variable.
        default: The default value if the variable is unset.

    Returns:
        A boolean value parsed from the environment.

    Raises:
        ValueError: If the variable holds an unrecognized value.
    """
    val = os.getenv(varname, str(default)).lower()
    if val in ("y", "yes", "t", "true", "on", "1"):
        return True
    if val in ("n", "no", "f", "false", "off", "0"):
        return False
    raise ValueError(f"invalid truth value {val!r} for environment {varname!r}")


def int_env(varname: str, default: int) -> int:
    """Read an environment variable and interpret it as an integer."""
    return int(os.getenv(varname, str(default)))


def _device_env() -> str:
    """Parse MESH_LAPLACIAN_GPU into a device string ('gpu'|'cpu'|'auto').

    Unset means 'cpu': the GPU path is opt-in.
    """
    raw = os.getenv("MESH_LAPLACIAN_GPU", "").strip().lower()
    if raw in {"1", "true", "y", "yes", "on", "gpu"}:
        dev = "gpu"
    elif raw in {"auto"}:
        dev = "auto"
    else:
        dev = "cpu"
    _LOGGER.debug("Env MESH_LAPLACIAN_GPU=%r -> device=%s", raw, dev)
    return dev


def _workers_env() -> int:
    """Parse MESH_LAPLACIAN_WORKERS, clamping to at least one worker."""
    workers = int_env("MESH_LAPLACIAN_WORKERS", 1)
    if workers < 1:
        _LOGGER.warning(
            "MESH_LAPLACIAN_WORKERS=%d is not positive; using 1 worker.", workers
        )
        workers = 1
    return workers


# -----------------------------------------------------------------------------
# Array backend abstraction
# -----------------------------------------------------------------------------
@dataclass
class ArrayBackend:
    """Descriptor for the active array backend (NumPy or CuPy)."""

    name: str
    is_gpu: bool
    xp: Any

    def to_cpu(self, a: Any) -> Any:
        """Copy an array to CPU if it is a CuPy array."""
        if self.is_gpu:
            import cupy as cp

            if isinstance(a, cp.ndarray):
                _LOGGER.debug(
                    "Transferring array from GPU->CPU (shape=%s)",
                    getattr(a, "shape", None),
                )
                return cp.asnumpy(a)
        return a

    def to_device(self, a: Any, dtype: Any | None = None) -> Any:
        """Copy an array to the active backend (NumPy or CuPy).

        Args:
            a: Input array-like.
            dtype: Optional dtype to cast to.

        Returns:
            An array on the current backend.
        """
        _LOGGER.debug(
            "Transferring array to %s (dtype=%s, shape=%s)",
            self.name,
            dtype,
            getattr(a, "shape", None),
        )
        return self.xp.asarray(a, dtype=dtype)

    def norm(self, v: Any, axis: int = -1, keepdims: bool = False) -> Any:
        """Compute the L2 norm along `axis` on the active backend."""
        return self.xp.linalg.norm(v, axis=axis, keepdims=keepdims)


def _make_cpu_backend() -> ArrayBackend:
    """Create a CPU (NumPy) backend."""
    import numpy as np

    be = ArrayBackend(name="numpy", is_gpu=False, xp=np)
    _LOGGER.info("Initialized CPU backend (NumPy)")
    return be


def _try_make_gpu_backend() -> ArrayBackend:
    """Create a GPU (CuPy) backend or raise if initialization fails.

    Raises:
        ImportError: If CuPy is not installed.
        RuntimeError: If no CUDA device is visible to CuPy.
    """
    import cupy as cp

    dev_count = cp.cuda.runtime.getDeviceCount()
    _LOGGER.debug("CuPy detected devices: %d", dev_count)
    if dev_count < 1:
        raise RuntimeError("No CUDA device visible to CuPy")

    be = ArrayBackend(name="cupy", is_gpu=True, xp=cp)
    _LOGGER.info("Initialized GPU backend (CuPy)")
    return be


def _auto_backend(device: str, *, strict: bool = False) -> ArrayBackend:
    """Select and initialize the backend based on `device` and availability.

    Args:
        device: One of 'cpu', 'gpu', or 'auto'.
        strict: If True, raise on GPU init failure instead of falling back.

    Returns:
        An initialized `ArrayBackend`.

    Raises:
        ValueError: If `device` is not a known device name.
    """
    _LOGGER.debug("Selecting backend: device=%s strict=%s", device, strict)
    if device == "cpu":
        return _make_cpu_backend()
    if device == "gpu":
        try:
            return _try_make_gpu_backend()
        except Exception as err:
            _LOGGER.error("GPU backend init failed: %r", err)
            if strict:
                raise
            _LOGGER.warning("Falling back to CPU backend.")
            return _make_cpu_backend()
    if device == "auto":
        try:
            return _try_make_gpu_backend()
        except Exception as err:
            _LOGGER.info("Auto GPU init failed (%r); using CPU.", err)
            return _make_cpu_backend()
    raise ValueError(f"unknown device {device!r}; expected 'cpu', 'gpu' or 'auto'")


# -----------------------------------------------------------------------------
# Config singleton + dynamic proxies
# -----------------------------------------------------------------------------
class Config:
    """Global configuration for mesh-laplacian.

    Holds the array backend used for per-triangle geometry and the default
    worker count of `LaplacianBuilder`.
    """

    def __init__(self) -> None:
        """Initialize config using environment defaults."""
        device = _device_env()
        self._backend: ArrayBackend = _auto_backend(device)
        self._workers: int = _workers_env()
        _LOGGER.info(
            "Config initialized: device=%s backend=%s workers=%d",
            device,
            self._backend.name,
            self._workers,
        )

    def configure(
        self,
        device: Optional[str] = None,
        *,
        workers: Optional[int] = None,
        strict: bool = False,
    ) -> Config:
        """Reconfigure the active backend and/or the default worker count.

        Args:
            device: One of 'cpu', 'gpu', or 'auto'. None keeps the backend.
            workers: Default number of assembly workers. None keeps it.
            strict: If True, raise on GPU init failure instead of fallback.

        Returns:
            The `Config` instance (for chaining).

        Raises:
            ValueError: If `workers` is not positive.
        """
        if workers is not None:
            if int(workers) < 1:
                raise ValueError(f"workers must be >= 1; got {workers}")
            self._workers = int(workers)
        if device is not None:
            self._backend = _auto_backend(device, strict=strict)
        _LOGGER.info(
            "Reconfigured: backend=%s workers=%d", self._backend.name, self._workers
        )
        return self

    @contextlib.contextmanager
    def use(
        self,
        device: Optional[str] = None,
        *,
        workers: Optional[int] = None,
        strict: bool = False,
    ) -> Iterator[None]:
        """Temporarily switch backend and/or workers within a context manager.

        Yields:
            None. Restores the previous settings on exit.
        """
        prev_backend = self._backend
        prev_workers = self._workers
        try:
            self.configure(device=device, workers=workers, strict=strict)
            yield
        finally:
            self._backend = prev_backend
            self._workers = prev_workers
            _LOGGER.info(
                "Restored previous config: backend=%s workers=%d",
                self._backend.name,
                self._workers,
            )

    @property
    def is_gpu(self) -> bool:
        """Return True if the active backend is a GPU backend."""
        return self._backend.is_gpu

    @property
    def backend_name(self) -> str:
        """Return the name of the active backend ('numpy' or 'cupy')."""
        return self._backend.name

    @property
    def xp(self) -> Any:
        """Return the active array module (NumPy or CuPy)."""
        return self._backend.xp

    @property
    def workers(self) -> int:
        """Return the default number of assembly workers."""
        return self._workers

    def to_cpu(self, a: Any) -> Any:
        """Copy an array to CPU if needed."""
        return self._backend.to_cpu(a)

    def to_device(self, a: Any, dtype: Any | None = None) -> Any:
        """Copy an array to the active backend."""
        return self._backend.to_device(a, dtype=dtype)

    def norm(self, v: Any, axis: int = -1, keepdims: bool = False) -> Any:
        """Compute the L2 norm on the active backend."""
        return self._backend.norm(v, axis=axis, keepdims=keepdims)


class _XPProxy:
    """Proxy for `xp` that forwards attribute access to the current backend."""

    def __init__(self, _cfg: Config) -> None:
        self._cfg = _cfg

    def __getattr__(self, name: str) -> Any:  # noqa: D401
        return getattr(self._cfg.xp, name)


# Singleton & forwards
config = Config()
xp = _XPProxy(config)


def to_cpu(a: Any) -> Any:
    """Copy an array to CPU if needed (module-level)."""
    return config.to_cpu(a)


def to_device(a: Any, dtype: Any | None = None) -> Any:
    """Copy an array to the active backend (module-level)."""
    return config.to_device(a, dtype=dtype)


def norm(v: Any, axis: int = -1, keepdims: bool = False) -> Any:
    """Compute the L2 norm on the active backend (module-level)."""
    return config.norm(v, axis=axis, keepdims=keepdims)


def is_gpu() -> bool:
    """Return True if the active backend is a GPU backend (module-level)."""
    return config.is_gpu


def backend_name() -> str:
    """Return the name of the active backend (module-level)."""
    return config.backend_name


def workers() -> int:
    """Return the default number of assembly workers (module-level)."""
    return config.workers


def configure(
    device: Optional[str] = None,
    *,
    workers: Optional[int] = None,
    strict: bool = False,
) -> Config:
    """Reconfigure the backend and/or default workers (module-level)."""
    return config.configure(device, workers=workers, strict=strict)


def use(
    device: Optional[str] = None,
    *,
    workers: Optional[int] = None,
    strict: bool = False,
) -> ContextManager[None]:
    """Temporarily switch backend and/or workers (module-level)."""
    return config.use(device, workers=workers, strict=strict)
