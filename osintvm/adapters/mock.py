"""
Mock adapter — stand-in for any production adapter.

Used by ``osintvm run --mock`` and by the test suite to walk the step
list without touching the machine. Responses can be scripted per action
(by id or by name), and a callback can simulate side effects such as a
clone creating its directory.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from osintvm.adapters.base import Adapter, ExecutionContext
from osintvm.adapters.registry import AdapterRegistry
from osintvm.core.models.action import Receipt

SideEffect = Callable[[ExecutionContext], None]

# Names of the adapters ``default_registry`` registers.
PRODUCTION_ADAPTERS = (
    "shell",
    "filesystem",
    "download",
    "git",
    "python",
    "apt",
    "gem",
    "snap",
    "pipx",
    "go",
    "systemd",
)


class MockAdapter(Adapter):
    """Records every action it receives and answers with a receipt.

    By default, returns success for everything. ``journal`` may be a
    list shared between several mocks to observe cross-adapter order.
    """

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        default_output: str = "[mock] executed",
        journal: list[ExecutionContext] | None = None,
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = default_output
        self._responses: dict[str, Receipt] = {}
        self._side_effects: dict[str, SideEffect] = {}
        self._call_log: list[ExecutionContext] = []
        self._journal = journal

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        """All execution contexts this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def called_names(self) -> list[str]:
        """Action names, in call order."""
        return [c.action.name for c in self._call_log]

    def is_available(self) -> bool:
        return self._available

    def set_response(self, key: str, receipt: Receipt) -> None:
        """Answer the action whose id or name is ``key`` with ``receipt``."""
        self._responses[key] = receipt

    def set_failure(self, key: str, error: str = "Mock failure") -> None:
        self._responses[key] = Receipt.failure(adapter=self._name, action_id=key, error=error)

    def set_skip(self, key: str, reason: str = "Mock skip") -> None:
        self._responses[key] = Receipt.skip(adapter=self._name, action_id=key, reason=reason)

    def on_execute(self, key: str, effect: SideEffect) -> None:
        """Run ``effect`` when the action ``key`` executes (``*`` for every action)."""
        self._side_effects[key] = effect

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)
        if self._journal is not None:
            self._journal.append(context)

        action = context.action
        for key in (action.id, action.name, "*"):
            effect = self._side_effects.get(key)
            if effect is not None:
                effect(context)
                break

        for key in (action.id, action.name):
            if key in self._responses:
                return self._responses[key].model_copy(update={"action_id": action.id})

        return Receipt.success(
            adapter=self._name,
            action_id=action.id,
            output=self._default_output,
            metadata={"mock": True},
        )

    def reset(self) -> None:
        """Clear call log, responses and side effects."""
        self._call_log.clear()
        self._responses.clear()
        self._side_effects.clear()


def mock_registry(
    unavailable: Iterable[str] = (),
    journal: list[ExecutionContext] | None = None,
) -> tuple[AdapterRegistry, dict[str, MockAdapter]]:
    """Registry with a MockAdapter under every production adapter name.

    Unlike registry-wide mock mode, availability is answered per adapter,
    so a missing optional tool can be simulated.
    """
    missing = set(unavailable)
    registry = AdapterRegistry()
    mocks: dict[str, MockAdapter] = {}
    for name in PRODUCTION_ADAPTERS:
        mock = MockAdapter(adapter_name=name, available=name not in missing, journal=journal)
        registry.register(mock)
        mocks[name] = mock
    return registry, mocks
