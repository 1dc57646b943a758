# rag routes: grounded answers, custom prompts, streaming and provider selection

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from ondevice_ai.common.exceptions import EmptyInputError
from ondevice_ai.common.logging.logger import logger
# dependencies
from ondevice_ai.core.dependencies import get_rag_service
from ondevice_ai.rag.rag_service import RagService
# request body models
from ondevice_ai.api.request_models.rag import RagQueryRequest, CustomPromptRequest, RagStreamRequest, SetProviderRequest
# response models
from ondevice_ai.api.response_models.rag import RagAnswerResponse, ProviderResponse

router = APIRouter(prefix="/rag", tags=["RAG"])

@router.post("/answer", response_model=RagAnswerResponse)
async def answer_with_rag(
    request: RagQueryRequest,
    rag_service: RagService = Depends(get_rag_service),
):
    result = await rag_service.answer_with_sources(request.query, request.context_count)
    return RagAnswerResponse(answer=result.answer, provider=result.provider, contexts=result.contexts)

@router.post("/custom", response_model=RagAnswerResponse)
async def answer_with_custom_prompt(
    request: CustomPromptRequest,
    rag_service: RagService = Depends(get_rag_service),
):
    answer = await rag_service.answer_with_custom_prompt(
        request.query,
        request.system_prompt,
        use_context=request.use_context,
        context_count=request.context_count,
    )
    return RagAnswerResponse(answer=answer, provider=rag_service.get_preferred_provider())

@router.post("/stream")
async def stream_answer(
    request: RagStreamRequest,
    rag_service: RagService = Depends(get_rag_service),
):
    """
    Streams the answer as plain text fragments.
    NOTE: the first fragment is pulled before responding so setup failures still map to a proper status code.
    """
    if not request.query.strip():
        raise EmptyInputError("Query must not be empty")

    if request.system_prompt is None and request.use_context:
        fragments = rag_service.stream_with_rag(request.query, request.context_count)
    else:
        fragments = rag_service.stream_with_custom_prompt(
            request.query,
            request.system_prompt,
            use_context=request.use_context,
            context_count=request.context_count,
        )

    try:
        first = await fragments.__anext__()
    except StopAsyncIteration:
        first = ""

    async def body():
        try:
            if first:
                yield first
            async for fragment in fragments:
                yield fragment
        finally:
            await fragments.aclose()
            logger.info("RAG stream closed")

    return StreamingResponse(body(), media_type="text/plain; charset=utf-8")

@router.get("/provider", response_model=ProviderResponse)
async def get_provider(rag_service: RagService = Depends(get_rag_service)):
    return ProviderResponse(
        preferred_provider=rag_service.get_preferred_provider(),
        available_providers=rag_service.chat_client.available_providers,
    )

@router.put("/provider", response_model=ProviderResponse)
async def set_provider(
    request: SetProviderRequest,
    rag_service: RagService = Depends(get_rag_service),
):
    rag_service.set_preferred_provider(request.provider)
    return ProviderResponse(
        preferred_provider=rag_service.get_preferred_provider(),
        available_providers=rag_service.chat_client.available_providers,
    )
