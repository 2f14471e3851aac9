"""API routes for transformation definitions and execution.

Definitions are served from the merged catalog (persisted definitions
shadow static ones). Writes only touch persisted definitions and trigger an
engine reload so the new definitions are applied immediately.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from textforge.definitions.schemas import DefinitionSummary
from textforge.engine import get_transformation_engine
from textforge.errors import (
    ConflictError,
    NotFoundError,
    ParseError,
    StepExecutionError,
    UnauthorizedFunctionError,
    UnknownStepTypeError,
    ValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transformations", tags=["transformations"])


# ── Request/Response schemas ─────────────────────────────


class StepPayload(BaseModel):
    type: str = Field(..., description="Step type, e.g. regex_replace")
    config: dict[str, Any] = Field(default_factory=dict)


class TransformationCreateRequest(BaseModel):
    name: str
    description: str = ""
    version: str = "1.0.0"
    transformations: list[StepPayload] = Field(..., min_length=1)


class TransformationUpdateRequest(BaseModel):
    description: Optional[str] = None
    version: Optional[str] = None
    transformations: Optional[list[StepPayload]] = None


class ApplyRequest(BaseModel):
    transformation: str = Field(..., description="Transformation name")
    input: str


class ApplyChainRequest(BaseModel):
    transformations: list[str] = Field(..., min_length=1)
    input: str


class ApplyResponse(BaseModel):
    """Result of applying a transformation (or chain)."""

    success: bool
    output: Optional[str] = None
    error: Optional[str] = None
    failed_step: Optional[str] = None


class DefinitionDocumentRequest(BaseModel):
    content: str = Field(..., description="YAML definition document")


# ── Helpers ──────────────────────────────────────────────


def _not_found(name: str) -> HTTPException:
    engine = get_transformation_engine()
    return HTTPException(
        status_code=404,
        detail=f"Transformation '{name}' not found. "
        f"Available: {engine.available_names()}",
    )


def _invalid(e: Exception) -> HTTPException:
    detail: Any = e.errors if isinstance(e, ValidationError) else str(e)
    return HTTPException(status_code=422, detail=detail)


def _run(fn, *args) -> ApplyResponse:
    try:
        return ApplyResponse(success=True, output=fn(*args))
    except (StepExecutionError, UnauthorizedFunctionError) as e:
        # 200 with success=false so consumers can handle it
        failed_step = e.step
        logger.warning(f"Transformation failed: {e} (step={failed_step})")
        return ApplyResponse(success=False, error=str(e), failed_step=failed_step)


# ── List endpoints ───────────────────────────────────────


@router.get("")
async def list_transformations():
    """List every definition from both sources (persisted wins on conflict)."""
    engine = get_transformation_engine()
    return engine.catalog.load_all().to_dict()


@router.get("/summaries", response_model=list[DefinitionSummary])
async def list_summaries():
    engine = get_transformation_engine()
    return engine.catalog.list_summaries()


@router.get("/names", response_model=list[str])
async def list_names():
    """Names the engine can apply (including built-ins)."""
    return get_transformation_engine().available_names()


@router.get("/stats")
async def get_statistics():
    engine = get_transformation_engine()
    return engine.catalog.statistics().model_dump()


# ── Execute ──────────────────────────────────────────────


@router.post("/apply", response_model=ApplyResponse)
async def apply_transformation(request: ApplyRequest):
    engine = get_transformation_engine()
    try:
        engine.get(request.transformation)
    except NotFoundError:
        raise _not_found(request.transformation)
    return _run(engine.apply, request.transformation, request.input)


@router.post("/apply-chain", response_model=ApplyResponse)
async def apply_chain(request: ApplyChainRequest):
    engine = get_transformation_engine()
    for name in request.transformations:
        try:
            engine.get(name)
        except NotFoundError:
            raise _not_found(name)
    return _run(engine.apply_chain, request.transformations, request.input)


@router.post("/validate")
async def validate_input(request: ApplyRequest):
    engine = get_transformation_engine()
    try:
        result = engine.validate_input(request.transformation, request.input)
    except NotFoundError:
        raise _not_found(request.transformation)
    return result.to_dict()


@router.post("/validate-definition")
async def validate_definition(request: DefinitionDocumentRequest):
    """Check a YAML definition document without saving it."""
    engine = get_transformation_engine()
    return engine.loader.validate_document(request.content).to_dict()


# ── Reload ───────────────────────────────────────────────


@router.post("/reload")
async def reload_transformations():
    """Force reload definitions from both sources."""
    engine = get_transformation_engine()
    result = engine.reload()
    return {
        "reloaded": True,
        "count": len(engine.available_names()),
        "errors": result.errors,
    }


# ── Detail endpoint ──────────────────────────────────────


@router.get("/{name}")
async def get_transformation(name: str):
    engine = get_transformation_engine()
    definition = engine.catalog.load_by_name(name)
    if definition is None:
        raise _not_found(name)
    return definition.to_dict()


# ── CRUD (persisted definitions) ─────────────────────────


@router.post("", status_code=201)
async def create_transformation(request: TransformationCreateRequest):
    engine = get_transformation_engine()
    try:
        definition = engine.catalog.create(
            name=request.name,
            description=request.description,
            version=request.version,
            steps=[s.model_dump() for s in request.transformations],
        )
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except (ValidationError, ParseError, UnknownStepTypeError, StepExecutionError) as e:
        raise _invalid(e)

    engine.reload()
    logger.info(f"Created transformation: {definition.name}")
    return definition.to_dict()


@router.put("/{record_id}")
async def update_transformation(record_id: str, request: TransformationUpdateRequest):
    engine = get_transformation_engine()
    attributes: dict[str, Any] = {
        "description": request.description,
        "version": request.version,
    }
    if request.transformations is not None:
        attributes["steps"] = [s.model_dump() for s in request.transformations]

    try:
        definition = engine.catalog.update(record_id, **attributes)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (ValidationError, ParseError, UnknownStepTypeError, StepExecutionError) as e:
        raise _invalid(e)

    engine.reload()
    logger.info(f"Updated transformation: {definition.name}")
    return definition.to_dict()


@router.delete("/{record_id}")
async def delete_transformation(record_id: str):
    engine = get_transformation_engine()
    try:
        engine.catalog.delete(record_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    engine.reload()
    logger.info(f"Deleted transformation: {record_id}")
    return {"deleted": record_id}
