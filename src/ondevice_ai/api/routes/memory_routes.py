# memory routes: add, query, list, search, delete

from fastapi import APIRouter, Depends, HTTPException, Query
from ondevice_ai.common.logging.logger import logger
# dependencies
from ondevice_ai.core.dependencies import get_memory_service
from ondevice_ai.memory.memory_service import MemoryService
# request body models
from ondevice_ai.api.request_models.memory import AddMemoryRequest, AddMemoriesRequest, QueryMemoryRequest
# response models
from ondevice_ai.api.response_models.memory import (
    AddMemoryResponse,
    AddMemoriesResponse,
    QueryMemoryResponse,
    MemoryItem,
    MemoryMatch,
    MemoryListResponse,
    MemoryCountResponse,
    DeleteMemoryResponse,
)

router = APIRouter(prefix="/memory", tags=["Memory"])

@router.post("", response_model=AddMemoryResponse, status_code=201)
async def add_memory(
    request: AddMemoryRequest,
    memory_service: MemoryService = Depends(get_memory_service),
):
    memory_id = await memory_service.add_memory(request.text, request.metadata)
    return AddMemoryResponse(id=memory_id)

@router.post("/batch", response_model=AddMemoriesResponse, status_code=201)
async def add_memories(
    request: AddMemoriesRequest,
    memory_service: MemoryService = Depends(get_memory_service),
):
    ids = await memory_service.add_memories(request.texts, request.metadata)
    return AddMemoriesResponse(ids=ids)

@router.post("/query", response_model=QueryMemoryResponse)
async def query_memory(
    request: QueryMemoryRequest,
    memory_service: MemoryService = Depends(get_memory_service),
):
    scored = await memory_service.query_memory_with_scores(request.query, request.k)
    logger.info(f"Memory query returned {len(scored)} results")
    return QueryMemoryResponse(
        query=request.query,
        results=[item.record.content for item in scored],
        matches=[
            MemoryMatch(**MemoryItem.from_record(item.record).model_dump(), score=item.score)
            for item in scored
        ],
    )

@router.get("", response_model=MemoryListResponse)
async def list_memories(
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    memory_service: MemoryService = Depends(get_memory_service),
):
    records = await memory_service.get_all_memories(limit=limit, offset=offset)
    total = await memory_service.get_memory_count()
    return MemoryListResponse(
        items=[MemoryItem.from_record(record) for record in records],
        limit=limit,
        offset=offset,
        total=total,
    )

@router.get("/count", response_model=MemoryCountResponse)
async def count_memories(memory_service: MemoryService = Depends(get_memory_service)):
    return MemoryCountResponse(count=await memory_service.get_memory_count())

@router.get("/search", response_model=list[MemoryItem])
async def search_memories(
    q: str = Query(min_length=1),
    limit: int = Query(default=10, ge=1, le=100),
    memory_service: MemoryService = Depends(get_memory_service),
):
    records = await memory_service.search_memories_by_text(q, limit=limit)
    return [MemoryItem.from_record(record) for record in records]

@router.get("/{memory_id}", response_model=MemoryItem)
async def get_memory(
    memory_id: int,
    memory_service: MemoryService = Depends(get_memory_service),
):
    record = await memory_service.get_memory(memory_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Memory {memory_id} not found")
    return MemoryItem.from_record(record)

@router.delete("/{memory_id}", response_model=DeleteMemoryResponse)
async def delete_memory(
    memory_id: int,
    memory_service: MemoryService = Depends(get_memory_service),
):
    deleted = await memory_service.delete_memory(memory_id)
    return DeleteMemoryResponse(id=memory_id, deleted=deleted)
