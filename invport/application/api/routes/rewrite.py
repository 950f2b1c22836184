"""
Description Rewrite Route

POST /aiRewrite {description, previewOnly}

Responses use a stage timeline instead of the standard error envelope:
clients render ``stages`` as progress, so a failure still reports the stages
reached before it.
"""

import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from invport.application.api.dependencies import RewriteServiceDep
from invport.core.clock import utc_now_iso
from invport.core.exceptions import ValidationError
from invport.core.logging.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Rewrite"])


@router.post("/aiRewrite", summary="Rewrite a vehicle description")
async def rewrite_description(request: Request, rewrite: RewriteServiceDep):
    """
    Build the rewrite prompt (``previewOnly``) or return a cleaned-up
    description capped at 120 words. A missing or blank ``description``
    returns 400 with only the ``received`` stage.
    """
    start = time.perf_counter()
    try:
        body = await request.json()
    except ValueError:
        body = {}

    try:
        return rewrite.rewrite(body)
    except ValidationError as exc:
        return JSONResponse(
            status_code=exc.status_code,
            content={"status": "error", "error": {"message": exc.message}, **exc.response_fields},
        )
    except Exception as exc:
        logger.error("Rewrite failed", error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "error": {"message": str(exc) or "Unknown error"},
                "stages": [{"name": "received", "at": utc_now_iso()}],
                "duration": f"{int(round((time.perf_counter() - start) * 1000))}ms",
            },
        )


@router.api_route(
    "/aiRewrite",
    methods=["GET", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def rewrite_method_not_allowed():
    return JSONResponse(
        status_code=405,
        content={"success": False, "error": "Method Not Allowed"},
        headers={"Allow": "POST"},
    )
