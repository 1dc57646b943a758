# permission snapshot -> available tool set

from typing import Iterable, Mapping, Protocol, runtime_checkable

from ondevice_ai.agent_service.common.tools.base import ToolDescriptor
from ondevice_ai.common.logging.logger import logger

@runtime_checkable
class PermissionSnapshotProvider(Protocol):
    """Read-only view of which host permissions are currently granted."""
    def get_permissions(self) -> Mapping[str, bool]:
        ...

class StaticPermissionProvider():
    """Fixed permission snapshot, e.g. from configuration or tests."""

    def __init__(self, granted: Iterable[str] = ()):
        self._granted = frozenset(granted)

    def get_permissions(self) -> Mapping[str, bool]:
        return {key: True for key in self._granted}

def resolve_available_tools(
    catalog: Iterable[ToolDescriptor],
    permission_provider: PermissionSnapshotProvider,
) -> list[ToolDescriptor]:
    """
    Filter the static catalog by a single permission snapshot.
    - Gated tools are kept only if their permission key is granted.
    - Names are unique within the result; the first occurrence wins.
    """
    permissions = dict(permission_provider.get_permissions())
    available: list[ToolDescriptor] = []
    seen: set[str] = set()

    for tool in catalog:
        if tool.requires_permission and not permissions.get(tool.permission_key or tool.name, False):
            logger.info(f"Tool {tool.name} unavailable: permission '{tool.permission_key}' not granted")
            continue
        if tool.name in seen:
            logger.warning(f"Duplicate tool name {tool.name} skipped")
            continue
        seen.add(tool.name)
        available.append(tool)
    return available
