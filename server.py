"""
Guidance Rx HTTP API
======================
  /api/ai-prescriptions/check-availability   GET   (auth)
  /api/ai-prescriptions/this-week            GET   (auth)
  /api/ai-prescriptions/history              GET   (auth)
  /api/ai-prescriptions/prescribe            POST  (auth + prescriber role)
  /api/solutions/generate                    POST  (auth)
  /api/solutions/health                      GET
  /health                                    GET

Every error body is {"success": false, "error": "..."}; stack traces are
only logged.
"""

import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any

import jwt
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from config import JWT_ALGORITHM, JWT_SECRET, PRESCRIBER_ROLES
from history_store import HistoryStore
from llm_client import GatewayError, LLMClient
from pipeline.category_prescriber import CategoryPrescriber, format_category_prescription
from pipeline.request_validation import ValidationError
from pipeline.response_parser import ParseError
from pipeline.weekly_prescriber import AdmissionDenied, WeeklyPrescriber

logger = logging.getLogger("guidance_rx.server")


class PrescribeRequest(BaseModel):
    issue: str | None = None
    context: dict[str, Any] | None = None


class SolutionRequest(BaseModel):
    issue: str | None = None
    setting: str | None = None
    urgency: str | None = None
    constraints: str | None = None
    trend: str | None = None


def _error(status_code: int, message: str, /, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message, **extra})


def create_app(store: HistoryStore = None, llm: LLMClient = None, now_fn=None,
               jwt_secret: str = None, prescriber_roles: list = None) -> FastAPI:
    """
    Build the API. Collaborators are injected so tests can supply a temp
    store, a stub LLM and a fixed clock.
    """
    store = store if store is not None else HistoryStore()
    llm = llm if llm is not None else LLMClient()
    secret = jwt_secret if jwt_secret is not None else JWT_SECRET
    if not secret:
        raise ValueError("JWT_SECRET is not set; refusing to start without a signing key")
    roles = [r.lower() for r in (prescriber_roles or PRESCRIBER_ROLES)]

    weekly_kwargs = {"now_fn": now_fn} if now_fn is not None else {}
    weekly = WeeklyPrescriber(store, llm, **weekly_kwargs)
    category = CategoryPrescriber(llm)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.load()
        yield

    app = FastAPI(title="Guidance Rx API", version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        request_id = str(uuid.uuid4())
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = int((time.perf_counter() - start) * 1000)
        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request_id=%s method=%s path=%s status=%s duration_ms=%s",
            request_id, request.method, request.url.path, response.status_code, duration_ms,
        )
        return response

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", []) if p != "body")
        return _error(400, f"Invalid request: {field or 'body'} {first.get('msg', '')}".strip())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return _error(500, "Internal server error. Please try again.")

    # ------------------------------------------------------------------
    #  Auth
    # ------------------------------------------------------------------
    bearer_scheme = HTTPBearer(auto_error=False)

    def get_current_user(
        credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    ) -> dict:
        if credentials is None or not credentials.credentials:
            raise HTTPException(status_code=401, detail="No token provided. Access denied.")
        try:
            payload = jwt.decode(credentials.credentials, secret, algorithms=[JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise HTTPException(status_code=401, detail="Token expired. Please login again.")
        except jwt.PyJWTError as e:
            logger.warning(f"Rejected token: {e}")
            raise HTTPException(status_code=401, detail="Invalid token. Please login again.")

        if not payload.get("id"):
            raise HTTPException(status_code=401, detail="Invalid token. Please login again.")
        return {"id": str(payload["id"]), "role": payload.get("role")}

    def require_prescriber(user: dict = Depends(get_current_user)) -> dict:
        role = (user.get("role") or "").lower()
        if role not in roles:
            raise HTTPException(
                status_code=403,
                detail=f"Access denied. {user.get('role')} role is not authorized for this action.",
            )
        return user

    # ------------------------------------------------------------------
    #  Weekly prescriptions
    # ------------------------------------------------------------------
    rx = APIRouter(prefix="/api/ai-prescriptions")

    @rx.get("/check-availability")
    def check_availability(user: dict = Depends(get_current_user)):
        return weekly.check_availability()

    @rx.get("/this-week")
    def get_this_week(user: dict = Depends(get_current_user)):
        prescription = weekly.this_week()
        if prescription:
            return {"success": True, "prescription": prescription}
        return {"success": False, "message": "No prescription for this week yet"}

    @rx.get("/history")
    def get_history(user: dict = Depends(get_current_user)):
        prescriptions = weekly.history()
        return {"success": True, "prescriptions": prescriptions, "total": len(prescriptions)}

    @rx.post("/prescribe")
    def create_prescription(req: PrescribeRequest, user: dict = Depends(require_prescriber)):
        try:
            return weekly.prescribe(req.issue, req.context, created_by=user["id"])
        except ValidationError as e:
            return _error(400, str(e))
        except AdmissionDenied as e:
            return JSONResponse(status_code=200, content=e.payload)
        except ParseError as e:
            return _error(500, "Failed to parse AI response. Please try again.", debug=e.debug())
        except GatewayError as e:
            return _error(500, str(e) or "Failed to create prescription. Please try again.")
        except OSError as e:
            logger.exception(f"Failed to persist prescription: {e}")
            return _error(500, "Failed to save prescription. Please try again.")

    # ------------------------------------------------------------------
    #  Category prescriptions
    # ------------------------------------------------------------------
    solutions = APIRouter(prefix="/api/solutions")

    @solutions.post("/generate")
    def generate_solution(req: SolutionRequest, user: dict = Depends(get_current_user)):
        stats = {k: v for k, v in {
            "setting": req.setting,
            "urgency": req.urgency,
            "constraints": req.constraints,
            "trend": req.trend,
        }.items() if v}
        try:
            result = category.generate(req.issue, stats)
        except ValidationError as e:
            return _error(400, str(e))
        except GatewayError as e:
            return _error(500, "Failed to generate solution", message=str(e))
        return {"success": True, "data": result, "formatted": format_category_prescription(result)}

    @solutions.get("/health")
    def solutions_health():
        return {"success": True, "status": "operational", "apiConfigured": llm.is_configured}

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(rx)
    app.include_router(solutions)
    return app
