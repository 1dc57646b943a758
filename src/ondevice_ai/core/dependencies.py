from fastapi import Request, Depends
from sqlalchemy.ext.asyncio import AsyncEngine

from ondevice_ai.common.services.llm_service.llm_client import ChatCompletionClient
from ondevice_ai.memory.memory_service import MemoryService
from ondevice_ai.rag.rag_service import RagService
from ondevice_ai.agent_service.common.tools.base import ToolDescriptor
from ondevice_ai.agent_service.common.tools.permissions import PermissionSnapshotProvider, resolve_available_tools
from ondevice_ai.agent_service.common.types.agent_outputs import AgentConfig
from ondevice_ai.agent_service.react_agent.agent import AgentExecutor

# This is the location to conveniently return any app lifetime dependencies to be used in routes
def get_memory_db_engine(request: Request) -> AsyncEngine:
    """
    FastAPI dependency to get the shared memory DB engine from the application state.
    """
    return request.app.state.memory_db_engine

def get_chat_client(request: Request) -> ChatCompletionClient:
    return request.app.state.chat_client

def get_memory_service(request: Request) -> MemoryService:
    return request.app.state.memory_service

def get_rag_service(request: Request) -> RagService:
    return request.app.state.rag_service

def get_tool_catalog(request: Request) -> list[ToolDescriptor]:
    return request.app.state.tool_catalog

def get_permission_provider(request: Request) -> PermissionSnapshotProvider:
    return request.app.state.permission_provider

def get_agent_config(request: Request) -> AgentConfig:
    return request.app.state.agent_config

def get_available_tools(
    tool_catalog: list[ToolDescriptor] = Depends(get_tool_catalog),
    permission_provider: PermissionSnapshotProvider = Depends(get_permission_provider),
) -> list[ToolDescriptor]:
    """
    Tools usable right now. The permission snapshot is read once per request.
    """
    return resolve_available_tools(tool_catalog, permission_provider)

def get_agent_executor(
    available_tools: list[ToolDescriptor] = Depends(get_available_tools),
    chat_client: ChatCompletionClient = Depends(get_chat_client),
    agent_config: AgentConfig = Depends(get_agent_config),
) -> AgentExecutor:
    """
    A fresh executor per request, bound to the current permission snapshot.
    """
    return AgentExecutor(tools=available_tools, llm_client=chat_client, config=agent_config)
