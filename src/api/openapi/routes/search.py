"""Transcript search endpoints."""

from fastapi import APIRouter

from src.api.dependencies import RetrieverDep
from src.application.dtos.search import ScoredChunk, SearchQuery, SearchResponse
from src.domain.exceptions import ChunkNotFoundException

router = APIRouter()


@router.post(
    "/search",
    response_model=SearchResponse,
    summary="Search transcripts",
    description="Rank transcript chunks by semantic similarity to a query.",
)
async def search(query: SearchQuery, retriever: RetrieverDep) -> SearchResponse:
    """Search transcript chunks by semantic similarity."""
    return await retriever.search_chunks(query)


@router.get("/chunks/{chunk_id}", response_model=ScoredChunk, summary="Get a chunk")
async def get_chunk(chunk_id: str, retriever: RetrieverDep) -> ScoredChunk:
    """Get one transcript chunk by ID."""
    chunk = await retriever.get_chunk_by_id(chunk_id)
    if chunk is None:
        raise ChunkNotFoundException(chunk_id)
    return chunk
