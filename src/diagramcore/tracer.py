"""
Hierarchical runtime tracing for the diagram core.

Integrations and geometric searches can spend thousands of samples or
bisection steps before giving up. The tracer records nested spans with
timing, per-span work counters (samples taken, pieces measured) and
notable events (budget exhaustion, step underflow, failed convergence) so
a caller can see where the work went without a debugger.
"""

import functools
import json
import sys
import time
from contextlib import contextmanager
from datetime import datetime

import numpy as np
from pydantic import BaseModel


class TracerConfig:
    """Configuration for the tracer."""

    def __init__(self):
        self.enabled = False
        self.level = "INFO"
        self.file_path = None
        self.json_output = False
        self._file_handle = None

    def configure(self, enabled=False, level="INFO", file_path=None, json_output=False):
        """Apply new settings, reopening the trace file if one is given."""
        self.enabled = enabled
        self.level = level.upper()
        self.file_path = file_path
        self.json_output = json_output

        self.close()
        if file_path and enabled:
            self._file_handle = open(file_path, "w", encoding="utf-8")

    def close(self):
        if self._file_handle:
            self._file_handle.close()
            self._file_handle = None


class _Span:
    """An open span: where it is, when it started and what it has counted."""

    def __init__(self, name, module):
        self.name = name
        self.module = module
        self.started = time.perf_counter()
        self.counters = {}

    def elapsed_ms(self):
        return (time.perf_counter() - self.started) * 1000


class Tracer:
    """
    Nested span logger.

    Text lines go to stderr (and the trace file when configured); with
    json_output each line is followed by a JSON record carrying the raw
    event metadata.
    """

    LEVELS = {"ERROR": 0, "WARN": 1, "INFO": 2, "DEBUG": 3}

    def __init__(self):
        self.config = TracerConfig()
        self._stack = []

    def _should_log(self, level):
        if not self.config.enabled:
            return False
        return self.LEVELS.get(level, 2) <= self.LEVELS.get(self.config.level, 2)

    def _emit(self, line):
        print(line, file=sys.stderr)
        if self.config._file_handle:
            self.config._file_handle.write(line + "\n")
            self.config._file_handle.flush()

    def _write(self, level, module, func, message, meta=None):
        if not self._should_log(level):
            return

        now = datetime.now()
        stamp = now.strftime("%H:%M:%S.") + f"{now.microsecond // 1000:03d}"
        depth = len(self._stack)
        where = f"{module}:{func}" if func else module
        self._emit(f"{stamp} {level:<5} {'  ' * depth}{where}  {message}")

        if self.config.json_output:
            self._emit(json.dumps({
                "timestamp": stamp,
                "level": level,
                "depth": depth,
                "module": module,
                "function": func,
                "message": message,
                "meta": {k: summarize(v) for k, v in (meta or {}).items()},
            }))

    @contextmanager
    def span(self, name, module="", **meta):
        """
        Context manager for a traced span.

        The end line carries the elapsed time and any counters bumped with
        count() inside the span. An exception escaping the span is logged
        at ERROR and re-raised.
        """
        if not self.config.enabled:
            yield
            return

        self._write("INFO", module, name, _join("start", meta), meta)
        current = _Span(name, module)
        self._stack.append(current)
        try:
            yield
        except Exception as e:
            self._stack.pop()
            self._write("ERROR", module, name,
                        f"failed dt={current.elapsed_ms():.1f}ms "
                        f"error={type(e).__name__}: {str(e)[:100]}")
            raise
        self._stack.pop()
        self._write("INFO", module, name,
                    _join(f"end ok dt={current.elapsed_ms():.1f}ms", current.counters),
                    current.counters)

    def count(self, key, n=1):
        """Add n to a counter on the innermost open span."""
        if self.config.enabled and self._stack:
            counters = self._stack[-1].counters
            counters[key] = counters.get(key, 0) + n

    def event(self, message, level="INFO", **meta):
        """Log a one-off event within the current span."""
        if not self._should_log(level):
            return

        if self._stack:
            self._write(level, self._stack[-1].module, self._stack[-1].name,
                        _join(message, meta), meta)
        else:
            self._write(level, "", "", _join(message, meta), meta)


def _join(message, meta):
    parts = [message] + [f"{k}={summarize(v)}" for k, v in meta.items()]
    return " ".join(parts).strip()


def summarize(obj, max_len=200):
    """
    Summarize an object for logging.

    Returns a compact string that never exceeds max_len characters. Knows
    about numpy arrays, numeric estimates, curves and other pydantic models.
    """
    result = _summarize_impl(obj)
    if len(result) > max_len:
        return result[:max_len - 3] + "..."
    return result


def _summarize_impl(obj):
    if obj is None:
        return "None"

    type_name = type(obj).__name__

    # Sample arrays: the range says more than the contents.
    if isinstance(obj, np.ndarray):
        shape_str = "x".join(str(s) for s in obj.shape)
        if obj.size and np.issubdtype(obj.dtype, np.number):
            return f"ndarray({obj.dtype},{shape_str},range=[{obj.min():.4g},{obj.max():.4g}])"
        return f"ndarray({obj.dtype},{shape_str})"

    if all(hasattr(obj, a) for a in ("value", "lower_bound", "upper_bound", "status")):
        return (f"{type_name}({obj.value:.6g} in [{obj.lower_bound:.6g},{obj.upper_bound:.6g}],"
                f"n={obj.sample_cnt},{obj.status.value})")

    if isinstance(obj, BaseModel):
        fields = list(type(obj).model_fields.keys())[:3]
        return f"{type_name}(fields={fields}...)"

    # Curves: parameter domain and bounding box.
    if hasattr(obj, "min_t") and hasattr(obj, "bounds"):
        bounds_str = ",".join(f"{b:.3g}" for b in obj.bounds())
        return f"{type_name}(t=[{obj.min_t:g},{obj.max_t:g}],bounds=[{bounds_str}])"

    if isinstance(obj, str):
        return repr(obj) if len(obj) <= 50 else f"str(len={len(obj)})"

    if isinstance(obj, (list, tuple)):
        if not obj:
            return f"{type_name}(len=0)"
        # Points print in full.
        if len(obj) == 2 and all(isinstance(v, (int, float)) for v in obj):
            return f"({obj[0]:.6g},{obj[1]:.6g})"
        return f"{type_name}(len={len(obj)},first={type(obj[0]).__name__})"

    if isinstance(obj, dict):
        keys_str = ",".join(str(k) for k in list(obj.keys())[:5])
        return f"dict(len={len(obj)},keys=[{keys_str}])"

    if isinstance(obj, float):
        return f"{obj:.10g}"

    if isinstance(obj, int):
        return str(obj)

    if callable(obj):
        return f"<{getattr(obj, '__name__', type_name)}>"

    return f"<{type_name}>"


def trace(label=None, arg_names=None):
    """
    Decorator to trace function execution.

    arg_names lists keyword arguments to show in the start line.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            if not _tracer.config.enabled:
                return func(*args, **kwargs)

            module = func.__module__.rsplit(".", 1)[-1] if func.__module__ else ""
            meta = {name: kwargs[name] for name in (arg_names or []) if name in kwargs}
            with _tracer.span(label or func.__name__, module=module, **meta):
                return func(*args, **kwargs)

        return wrapper
    return decorator


_tracer = Tracer()


def get_tracer():
    """Get the global tracer instance."""
    return _tracer


def configure_tracer(enabled=False, level="INFO", file_path=None, json_output=False):
    """Configure the global tracer."""
    _tracer.config.configure(
        enabled=enabled,
        level=level,
        file_path=file_path,
        json_output=json_output,
    )
