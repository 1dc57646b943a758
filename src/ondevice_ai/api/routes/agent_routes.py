# agent routes: run the ReAct loop, inspect available tools

from fastapi import APIRouter, Depends
from ondevice_ai.common.logging.logger import logger
# dependencies
from ondevice_ai.core.dependencies import get_agent_executor, get_available_tools
from ondevice_ai.agent_service.react_agent.agent import AgentExecutor
from ondevice_ai.agent_service.common.tools.base import ToolDescriptor
# request body models
from ondevice_ai.api.request_models.agent import AgentRunRequest
# response models
from ondevice_ai.agent_service.common.types.agent_outputs import AgentResult
from ondevice_ai.api.response_models.agent import ToolInfo

router = APIRouter(prefix="/agent", tags=["Agent"])

@router.post("/run", response_model=AgentResult)
async def run_agent(
    request: AgentRunRequest,
    agent_executor: AgentExecutor = Depends(get_agent_executor),
):
    """
    Runs the agent to completion. Always answers with a string final_answer;
    degraded outcomes are reported through success=False and stop_reason.
    """
    overrides = {
        key: value
        for key, value in (("max_iterations", request.max_iterations), ("timeout_ms", request.timeout_ms))
        if value is not None
    }
    if overrides:
        agent_executor.update_config(**overrides)

    result = await agent_executor.run(request.query)
    logger.info(f"Agent run via API: success={result.success}, steps={result.total_steps}")
    return result

@router.get("/tools", response_model=list[ToolInfo])
async def list_tools(available_tools: list[ToolDescriptor] = Depends(get_available_tools)):
    return [
        ToolInfo(
            name=tool.name,
            description=tool.description,
            category=tool.category,
            parameters=tool.parameters,
            requires_permission=tool.requires_permission,
        )
        for tool in available_tools
    ]
