"""Keepalive and connection settings resolved through a chain of scopes.

A scope is one level of configuration, typically one resource type, with an
optional parent scope it falls back to. Resolution walks the chain from the
most specific scope outwards and takes the first value set explicitly.
Keepalive resolves to False when no scope sets it.
"""

import logging
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from resource_keepalive.config import ResourceConfig
from resource_keepalive.connection import ConnectionFactory
from resource_keepalive.exceptions import ConfigurationError
from resource_keepalive.executor import RequestExecutor
from resource_keepalive.instrumentation import Notifier, get_notifier
from resource_keepalive.pool import ConnectionPool, get_shared_pool

logger = logging.getLogger(__name__)

SETTING_NAMES = tuple(ResourceConfig.model_fields)

_UNSET = object()

ScopeLike = Union["ResourceScope", Mapping[str, Any]]


def _local_settings(scope: ScopeLike) -> Mapping[str, Any]:
    if isinstance(scope, ResourceScope):
        return scope.local_settings
    return scope


def resolve_setting(scopes: Iterable[ScopeLike], name: str, default: Any = None) -> Any:
    """Return the first value of name set in scopes, or default."""
    for scope in scopes:
        settings = _local_settings(scope)
        if name in settings:
            return settings[name]
    return default


def resolve_keepalive(scopes: Iterable[ScopeLike]) -> bool:
    """
    Resolve whether connections are pooled for the most specific scope.

    Args:
        scopes: Scopes ordered from most specific to most general; either
            ResourceScope objects or mappings of locally set values

    Returns:
        The first explicitly set keepalive value, False if none is set
    """
    value = resolve_setting(scopes, "keepalive", None)
    return bool(value) if value is not None else False


class ResourceScope:
    """Settings for one resource type, falling back to a parent scope.

    Each scope caches the RequestExecutor built from its effective settings.
    Changing a setting drops that cached executor so the next request builds
    a new one; pooled connections are left alone.
    """

    def __init__(
        self,
        name: str,
        parent: Optional["ResourceScope"] = None,
        config: Optional[ResourceConfig] = None,
        pool: Optional[ConnectionPool] = None,
        factory: Optional[ConnectionFactory] = None,
        notifier: Optional[Notifier] = None,
        **settings: Any,
    ):
        self.name = name
        self.parent = parent
        self._settings: Dict[str, Any] = {}
        self._pool = pool
        self._factory = factory
        self._notifier = notifier
        self._executor: Optional[RequestExecutor] = None
        self._lock = threading.Lock()

        if config is not None:
            for field in config.model_fields_set:
                self._settings[field] = getattr(config, field)
        for setting, value in settings.items():
            self.set(setting, value)

    @property
    def local_settings(self) -> Dict[str, Any]:
        return dict(self._settings)

    def chain(self) -> List["ResourceScope"]:
        """This scope followed by its ancestors."""
        scopes = []
        scope: Optional[ResourceScope] = self
        while scope is not None:
            scopes.append(scope)
            scope = scope.parent
        return scopes

    def get(self, name: str, default: Any = None) -> Any:
        """Effective value of a setting, falling back through parents."""
        self._check_name(name)
        return resolve_setting(self.chain(), name, default)

    def set(self, name: str, value: Any) -> None:
        """Set a setting on this scope and drop its cached executor."""
        self._check_name(name)
        try:
            parsed = ResourceConfig(**{name: value})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid value for {name}: {e}") from e
        with self._lock:
            self._settings[name] = getattr(parsed, name)
            self._executor = None
        logger.debug(f"Scope {self.name}: {name} changed, executor reset")

    def unset(self, name: str) -> None:
        """Remove a local setting so it falls back to the parent again."""
        self._check_name(name)
        with self._lock:
            self._settings.pop(name, None)
            self._executor = None

    @property
    def keepalive(self) -> bool:
        return resolve_keepalive(self.chain())

    @keepalive.setter
    def keepalive(self, value: bool) -> None:
        self.set("keepalive", value)

    @property
    def pool(self) -> ConnectionPool:
        for scope in self.chain():
            if scope._pool is not None:
                return scope._pool
        return get_shared_pool()

    @property
    def factory(self) -> Optional[ConnectionFactory]:
        for scope in self.chain():
            if scope._factory is not None:
                return scope._factory
        return None

    @property
    def notifier(self) -> Notifier:
        for scope in self.chain():
            if scope._notifier is not None:
                return scope._notifier
        return get_notifier()

    def effective_config(self) -> ResourceConfig:
        """Merge the settings of the whole chain into one config."""
        chain = self.chain()
        merged: Dict[str, Any] = {}
        for name in SETTING_NAMES:
            value = resolve_setting(chain, name, _UNSET)
            if value is not _UNSET:
                merged[name] = value
        merged["keepalive"] = resolve_keepalive(chain)
        return ResourceConfig(**merged)

    def executor(self, refresh: bool = False) -> RequestExecutor:
        """
        Return the scope's executor, building it when needed.

        A new executor is built on first use, when refresh is set, or when the
        effective settings differ from those the cached one was built with
        (e.g. a parent scope changed).
        """
        config = self.effective_config()
        with self._lock:
            if refresh or self._executor is None or self._executor.config != config:
                self._executor = RequestExecutor(
                    config,
                    pool=self.pool,
                    factory=self.factory,
                    notifier=self.notifier,
                )
            return self._executor

    def _check_name(self, name: str) -> None:
        if name not in SETTING_NAMES:
            raise ConfigurationError(f"Unknown setting: {name}")

    def __repr__(self) -> str:
        return f"<ResourceScope {self.name}>"
