from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request

from backend.job_assist.core.dispatcher import Dispatcher, OperationKind
from backend.job_assist.services.llm_service import LLMService

router = APIRouter(tags=["generation"])


def get_llm(request: Request) -> LLMService:
    # Created once in the app lifespan; overridden in tests.
    return request.app.state.llm_service


def get_dispatcher(llm: LLMService = Depends(get_llm)) -> Dispatcher:
    return Dispatcher(llm_service=llm)


# Bodies are taken raw: validation belongs to the dispatcher, which answers
# with an error envelope instead of a 422.
RawBody = Body(default=None)


async def _dispatch(dispatcher: Dispatcher, payload: Any, operation: OperationKind) -> Dict[str, Any]:
    envelope = await dispatcher.handle(payload, operation)
    return envelope.model_dump(by_alias=True)


@router.post("/generate")
async def generate(payload: Any = RawBody, dispatcher: Dispatcher = Depends(get_dispatcher)):
    return await _dispatch(dispatcher, payload, OperationKind.GENERATE)


@router.post("/revise")
async def revise(payload: Any = RawBody, dispatcher: Dispatcher = Depends(get_dispatcher)):
    return await _dispatch(dispatcher, payload, OperationKind.REVISE)


@router.post("/job-details")
async def job_details(payload: Any = RawBody, dispatcher: Dispatcher = Depends(get_dispatcher)):
    return await _dispatch(dispatcher, payload, OperationKind.EXTRACT_JOB_DETAILS)


@router.post("/bio/completeness")
async def bio_completeness(payload: Any = RawBody, dispatcher: Dispatcher = Depends(get_dispatcher)):
    return await _dispatch(dispatcher, payload, OperationKind.ANALYZE_BIO_COMPLETENESS)


@router.post("/job-match")
async def job_match(payload: Any = RawBody, dispatcher: Dispatcher = Depends(get_dispatcher)):
    return await _dispatch(dispatcher, payload, OperationKind.ANALYZE_JOB_MATCH)


@router.post("/cv/update-field")
async def cv_update_field(payload: Any = RawBody, dispatcher: Dispatcher = Depends(get_dispatcher)):
    return await _dispatch(dispatcher, payload, OperationKind.UPDATE_CV_FIELD)
