"""
Lifecycle event dispatch.

Events are plain dotted names. The ones tenantguard emits or listens for:

- app.startup / app.shutdown: fired from the application lifespan
- tenant.organization.created: seeds organization policies
- tenant.project.created: seeds project policies

Handlers run sequentially, lowest priority value first, inside the
`trigger` call, so a creation event has finished bootstrapping by the
time the caller gets its `HookResult` back.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Awaitable, Callable

import structlog

logger = structlog.get_logger()

Handler = Callable[..., Awaitable[Any]]


class HookPriority(IntEnum):
    FIRST = 0
    EARLY = 25
    NORMAL = 50
    LATE = 75
    LAST = 100


@dataclass
class Hook:
    name: str
    handler: Handler
    priority: HookPriority = HookPriority.NORMAL
    source: str = ""

    @property
    def label(self) -> str:
        return self.source or getattr(self.handler, "__qualname__", repr(self.handler))


@dataclass
class HookResult:
    """Outcome of one `trigger` call: handler return values plus failures."""

    hook_name: str
    results: list[Any] = field(default_factory=list)
    errors: list[tuple[str, Exception]] = field(default_factory=list)
    stopped: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors


class HookManager:
    """
    Registry of event handlers.

    A failing handler never propagates out of `trigger`. It is logged,
    added to `HookResult.errors` and counted in `error_count`; later
    handlers still run unless the caller passes `stop_on_error=True`.
    """

    def __init__(self):
        self._hooks: dict[str, list[Hook]] = defaultdict(list)
        self.error_count = 0

    def register(
        self,
        name: str,
        handler: Handler,
        *,
        priority: HookPriority = HookPriority.NORMAL,
        source: str = "",
    ) -> Hook:
        hook = Hook(name=name, handler=handler, priority=priority, source=source)
        handlers = self._hooks[name]
        handlers.append(hook)
        # Stable sort: equal priorities keep registration order
        handlers.sort(key=lambda h: h.priority)
        logger.debug("Hook registered", hook=name, handler=hook.label, priority=int(priority))
        return hook

    def on(self, name: str, *, priority: HookPriority = HookPriority.NORMAL, source: str = ""):
        """Decorator form of `register`."""

        def decorator(func: Handler) -> Handler:
            self.register(name, func, priority=priority, source=source)
            return func

        return decorator

    def unregister(self, name: str, handler: Handler) -> bool:
        handlers = self._hooks.get(name, [])
        remaining = [h for h in handlers if h.handler is not handler]
        if len(remaining) == len(handlers):
            return False
        self._hooks[name] = remaining
        return True

    def unregister_source(self, source: str) -> int:
        """Drop every handler tagged with `source`; returns the number removed."""
        removed = 0
        for name in list(self._hooks):
            handlers = self._hooks[name]
            remaining = [h for h in handlers if h.source != source]
            removed += len(handlers) - len(remaining)
            self._hooks[name] = remaining
        return removed

    async def trigger(self, name: str, *args: Any, stop_on_error: bool = False, **kwargs: Any) -> HookResult:
        result = HookResult(hook_name=name)

        # Snapshot so handlers may (un)register without skipping entries
        for hook in tuple(self._hooks.get(name, ())):
            try:
                result.results.append(await hook.handler(*args, **kwargs))
            except Exception as exc:
                self.error_count += 1
                result.errors.append((hook.label, exc))
                logger.error("Hook handler failed", hook=name, handler=hook.label, error=str(exc))
                if stop_on_error:
                    result.stopped = True
                    break

        return result

    def has_hooks(self, name: str) -> bool:
        return bool(self._hooks.get(name))

    def list_hooks(self, prefix: str = "") -> list[str]:
        """Names with at least one handler, sorted."""
        return sorted(n for n, handlers in self._hooks.items() if handlers and n.startswith(prefix))


# Process-wide manager used by the application lifespan
hooks = HookManager()
