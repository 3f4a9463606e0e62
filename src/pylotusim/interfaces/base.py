"""Backend interface contract.

Every transport (UDP/TCP, pub/sub) subclasses :class:`BaseInterface`.
Poses written into :attr:`BaseInterface.staged` always use renderer
conventions (left-handed, Y-up).
"""

from __future__ import annotations

import abc
import logging

from pylotusim.clock import FrameClock
from pylotusim.config import BridgeConfig
from pylotusim.staging import StagedOutputs


class BaseInterface(abc.ABC):
    """Common surface of all backend transports.

    Lifecycle: :meth:`start` once (again after :meth:`destroy` to
    reconfigure), :meth:`update` once per render frame, :meth:`destroy` on
    teardown.
    """

    def __init__(
        self,
        *,
        config: BridgeConfig,
        clock: FrameClock,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._clock = clock
        self._logger = logger or logging.getLogger(type(self).__module__)
        self._namespace = ""
        self.staged = StagedOutputs()

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def clock(self) -> FrameClock:
        return self._clock

    @property
    @abc.abstractmethod
    def is_running(self) -> bool:
        """Whether :meth:`start` succeeded and :meth:`destroy` has not run since."""

    @abc.abstractmethod
    def start(self, namespace: str) -> None:
        """Begin listening; must not block beyond socket/subscription setup."""

    @abc.abstractmethod
    def update(self) -> None:
        """Per-frame pump. Never blocks on I/O and never raises for bad messages."""

    @abc.abstractmethod
    def destroy(self) -> None:
        """Stop background work and release sockets before returning."""

    def interpolation_ratio(self) -> float:
        """Blend factor between backend and render time.

        ``0`` freezes the renderer, ``1`` plays at full backend rate.
        """
        return 1.0
