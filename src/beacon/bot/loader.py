"""
Dynamic Command Module Loader for Beacon

Purpose
-------
Discover every command module file in a package, run its setup() hook and
collect the CommandModule instances it adds, with timing and a loading
summary.

Responsibilities
----------------
- Walk the command package with pkgutil.walk_packages
- Validate each file before loading (check for setup() function)
- Run setup() with timeout protection
- Reject duplicate module names
- Log a comprehensive loading summary

Non-Responsibilities
--------------------
- Classifying modules as global or guild-scoped (handled by CommandRegistry)
- Registering commands with Discord (handled by CommandRegistrar)

Command files expose:

    async def setup(loader):
        loader.add_module(MyCommands())
"""

from __future__ import annotations

import asyncio
import importlib
import inspect
import pkgutil
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from beacon.bot.registry import CommandModule
from beacon.core.config import Config
from beacon.core.exceptions import ModuleLoadError
from beacon.core.logging.logger import get_logger

logger = get_logger(__name__)


@dataclass
class LoadResult:
    """Result of loading a single command file."""

    name: str
    success: bool
    duration_ms: float
    modules: List[str] = field(default_factory=list)
    error: Optional[Exception] = None
    error_type: Optional[str] = None


class ModuleLoader:
    """
    Loads CommandModule instances from a Python package.

    Every call to load_all() re-runs each file's setup(), so modules are
    constructed fresh for every discovery.
    """

    def __init__(self, load_timeout_seconds: Optional[float] = None) -> None:
        self.load_timeout_seconds: float = (
            Config.MODULE_LOAD_TIMEOUT_SECONDS
            if load_timeout_seconds is None
            else load_timeout_seconds
        )
        self.load_results: List[LoadResult] = []
        self._modules: Dict[str, CommandModule] = {}
        self.last_stats: Dict[str, Any] = {}

    def add_module(self, module: CommandModule) -> None:
        """Called from a command file's setup() to contribute a module."""
        if not isinstance(module, CommandModule):
            raise TypeError(f"Expected a CommandModule, got {type(module).__name__}")
        if module.name in self._modules:
            raise ModuleLoadError(module.name, "duplicate module name")
        self._modules[module.name] = module

    async def load_all(self, package: str) -> List[CommandModule]:
        """
        Discover and load all command files in ``package``.

        Returns:
            The loaded modules in discovery order.
        """
        start_time = time.perf_counter()
        self._modules = {}
        self.load_results = []

        logger.info("Discovering command modules", extra={"package": package})
        names = self._discover(package)

        if not names:
            logger.warning("No command files discovered", extra={"package": package})
            self.last_stats = self._build_stats(start_time)
            return []

        for name in names:
            self.load_results.append(await self._load_with_timeout(name))

        self.last_stats = self._build_stats(start_time)
        self._log_summary(self.last_stats)
        return list(self._modules.values())

    def _discover(self, package: str) -> List[str]:
        try:
            root = importlib.import_module(package)
        except ImportError as exc:
            logger.error(
                "Command package cannot be imported",
                extra={"package": package, "error": str(exc)},
                exc_info=True,
            )
            return []

        search_path = getattr(root, "__path__", None)
        if search_path is None:
            # A plain module is its own single command file
            return [package]

        names: List[str] = []
        for _, name, ispkg in pkgutil.walk_packages(search_path, prefix=f"{package}."):
            if ispkg:
                continue
            names.append(name)
        return sorted(names)

    async def _load_with_timeout(self, module_path: str) -> LoadResult:
        start_time = time.perf_counter()
        before = set(self._modules)

        try:
            setup_fn = self._validate(module_path)
            if setup_fn is None:
                logger.debug("Skipping file without setup()", extra={"module_path": module_path})
                return LoadResult(name=module_path, success=True, duration_ms=0.0)

            result = setup_fn(self)
            if inspect.isawaitable(result):
                await asyncio.wait_for(result, timeout=self.load_timeout_seconds)

            duration_ms = (time.perf_counter() - start_time) * 1000
            added = [name for name in self._modules if name not in before]
            logger.info(
                "Command file loaded",
                extra={
                    "module_path": module_path,
                    "modules": added,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            return LoadResult(
                name=module_path,
                success=True,
                duration_ms=duration_ms,
                modules=added,
            )

        except asyncio.TimeoutError:
            self._rollback(before)
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "Command file load timeout",
                extra={
                    "module_path": module_path,
                    "timeout_seconds": self.load_timeout_seconds,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            return LoadResult(
                name=module_path,
                success=False,
                duration_ms=duration_ms,
                error=TimeoutError(f"setup() exceeded {self.load_timeout_seconds}s timeout"),
                error_type="TimeoutError",
            )

        except Exception as exc:
            self._rollback(before)
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "Failed to load command file",
                extra={
                    "module_path": module_path,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                    "duration_ms": round(duration_ms, 2),
                },
                exc_info=True,
            )
            return LoadResult(
                name=module_path,
                success=False,
                duration_ms=duration_ms,
                error=exc,
                error_type=type(exc).__name__,
            )

    def _validate(self, module_path: str):
        """
        Import the file and return its setup() callable.

        Files without setup() (helpers, shared code) are skipped rather
        than failed.
        """
        try:
            module = importlib.import_module(module_path)
        except ImportError as exc:
            raise ModuleLoadError(module_path, f"cannot import module: {exc}") from exc

        setup_fn = getattr(module, "setup", None)
        if setup_fn is None:
            return None
        if not callable(setup_fn):
            raise ModuleLoadError(module_path, "setup must be a callable function")
        return setup_fn

    def _rollback(self, names_before: set) -> None:
        for name in [n for n in self._modules if n not in names_before]:
            del self._modules[name]

    def _build_stats(self, start_time: float) -> Dict[str, Any]:
        total_time_ms = (time.perf_counter() - start_time) * 1000
        successful = [r for r in self.load_results if r.success]
        failed = [r for r in self.load_results if not r.success]

        stats: Dict[str, Any] = {
            "total_time_ms": total_time_ms,
            "discovered": len(self.load_results),
            "loaded": len(successful),
            "failed": len(failed),
            "modules": len(self._modules),
            "results": self.load_results,
        }

        if failed:
            error_types: Dict[str, int] = {}
            for result in failed:
                etype = result.error_type or "Unknown"
                error_types[etype] = error_types.get(etype, 0) + 1
            stats["error_breakdown"] = error_types

        return stats

    def _log_summary(self, stats: Dict[str, Any]) -> None:
        logger.info("=" * 60)
        logger.info("COMMAND MODULE LOADING SUMMARY")
        logger.info("=" * 60)
        logger.info("Total Time:     %.0fms", stats["total_time_ms"])
        logger.info("Files:          %d", stats["discovered"])
        logger.info("Loaded:         %d", stats["loaded"])
        logger.info("Failed:         %d", stats["failed"])
        logger.info("Modules:        %d", stats["modules"])

        if "error_breakdown" in stats:
            logger.warning("Error Breakdown:")
            for error_type, count in stats["error_breakdown"].items():
                logger.warning("  • %s: %d", error_type, count)

        logger.info("=" * 60)
