from contextlib import asynccontextmanager, AsyncExitStack
from fastapi import FastAPI
from ondevice_ai.config.app_config import get_service_settings
from ondevice_ai.common.logging.logger import logger
from ondevice_ai.common.db.session import create_db_engine_context, parse_db_settings_from_service, DBType
from ondevice_ai.core.clients import build_chat_completion_client, build_text_embedding_client
from ondevice_ai.memory.vector_store import VectorStore
from ondevice_ai.memory.memory_service import MemoryService
from ondevice_ai.rag.rag_service import RagService
from ondevice_ai.agent_service.common.tools.catalog import build_tool_catalog
from ondevice_ai.agent_service.common.tools.permissions import StaticPermissionProvider
from ondevice_ai.agent_service.common.types.agent_outputs import AgentConfig

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manages the service's startup and shutdown events.
    Uses the AsyncExitStack to clean up resources.
    Register resources to the app state to be used as dependencies.

    NOTE:
    - Use stack.enter_async_context when the resource has __aenter__ and __aexit__ support
    - Use stack.push_async_callback to register the clean up method only
    - Every service is built once here and injected into routes; nothing is a process-wide singleton
    """
    logger.info("Starting OnDeviceAI agent service!")

    logger.info("Initializing service resources...")
    settings = get_service_settings()

    async with AsyncExitStack() as stack:

        # Memory db engine
        memory_db_settings = parse_db_settings_from_service(settings, DBType.MemoryDB)
        app.state.memory_db_engine = await stack.enter_async_context(
            create_db_engine_context(
                db_settings=memory_db_settings
            )
        )
        logger.info("Memory database engine initialized.")

        # Embedding + chat clients (no need for resource clean up)
        app.state.text_embedding_client = build_text_embedding_client(settings)
        logger.info(f"Text embedding client ({app.state.text_embedding_client.provider.value}) initialized.")
        app.state.chat_client = build_chat_completion_client(settings)

        # Memory + RAG services
        vector_store = VectorStore(main_db_engine=app.state.memory_db_engine)
        memory_service = MemoryService(vector_store=vector_store, text_embedding_client=app.state.text_embedding_client)
        await memory_service.initialize()
        stack.push_async_callback(memory_service.close)
        app.state.memory_service = memory_service
        app.state.rag_service = RagService(memory_service=memory_service, chat_client=app.state.chat_client)
        logger.info("Memory and RAG services initialized.")

        # Agent: static tool catalog + host permission snapshot, resolved per executor
        # NOTE: no calendar provider is wired in this service; the host supplies one when it has device calendar access
        app.state.calendar_provider = None
        app.state.tool_catalog = build_tool_catalog(memory_service, calendar_provider=app.state.calendar_provider)
        app.state.permission_provider = StaticPermissionProvider(settings.GRANTED_PERMISSIONS)
        app.state.agent_config = AgentConfig(
            max_iterations=settings.AGENT_MAX_ITERATIONS,
            timeout_ms=settings.AGENT_TIMEOUT_MS,
            retry_attempts=settings.AGENT_RETRY_ATTEMPTS,
        )
        logger.info(f"Agent tool catalog initialized with {len(app.state.tool_catalog)} tools.")

        try:
            # lets FastAPI process requests during yield
            yield
        finally:
            logger.info("Shutting down service resources...")

        # The AsyncExitStack will automatically call the __aexit__ or registered cleanup
        # methods for all resources entered or pushed to it, in reverse order.
    logger.info("All global resources have been gracefully closed.")
