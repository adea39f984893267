import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import Settings
from database import TASKS, USERS, connect, create_document, get_documents, serialize, to_object_id
from notifications import Mailer, NotificationDispatcher, SmtpMailer
from schemas import Task, User
from security import DUMMY_HASH, hash_password, verify_password
from validation import is_valid_email, is_valid_password, missing_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# -----------------------------
# Errors
# -----------------------------
class ApiError(Exception):
    """
    Client-facing failure rendered as ``{key: text}``.

    Register and task routes answer with an ``error`` key while login,
    complete and delete answer with ``message``; existing clients read
    whichever key their endpoint uses.
    """

    def __init__(self, status_code: int, text: str, key: str = "error"):
        super().__init__(text)
        self.status_code = status_code
        self.text = text
        self.key = key


async def _handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={exc.key: exc.text})


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        text = f"{where}: {first.get('msg')}" if where else str(first.get("msg"))
    else:
        text = "Invalid request"
    logger.info("Rejected %s %s: %s", request.method, request.url.path, text)
    return JSONResponse(status_code=400, content={"error": text})


async def _handle_store_error(request: Request, exc: PyMongoError) -> JSONResponse:
    logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": str(exc)})


# -----------------------------
# Dependencies
# -----------------------------
def get_db(request: Request) -> Database:
    return request.app.state.db


def get_notifier(request: Request) -> NotificationDispatcher:
    return request.app.state.notifier


# -----------------------------
# Schemas (subset for requests)
# -----------------------------
class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    emergencyContact: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class TaskCreate(BaseModel):
    userId: str
    title: str = Field(..., min_length=1)
    category: Optional[Any] = None
    time: Optional[str] = None
    notes: Optional[str] = None
    isCompleted: bool = False


REGISTER_FIELDS = ("name", "email", "password", "emergencyContact")


# -----------------------------
# Auth endpoints
# -----------------------------
@router.post("/register", status_code=201)
def register(body: RegisterRequest, db: Database = Depends(get_db)):
    if missing_fields(body.model_dump(), REGISTER_FIELDS):
        raise ApiError(400, "All fields are required")
    if not is_valid_email(body.email):
        raise ApiError(400, "Invalid email format")
    if not is_valid_password(body.password):
        raise ApiError(400, "Password must be at least 6 characters")
    if not is_valid_email(body.emergencyContact):
        raise ApiError(400, "Invalid emergency contact email")

    existing = db[USERS].find_one({"email": body.email})
    if existing:
        raise ApiError(400, "Email is already registered")

    payload = User(
        name=body.name,
        email=body.email,
        password=hash_password(body.password),
        emergencyContact=body.emergencyContact,
    ).model_dump()
    user = create_document(db, USERS, payload)
    logger.info("Registered user %s", user["_id"])
    return {"message": "User Registered Successfully!", "userId": str(user["_id"])}


@router.post("/login")
def login(body: LoginRequest, db: Database = Depends(get_db)):
    if not body.email or not body.password:
        raise ApiError(400, "Email and password are required", key="message")

    user = db[USERS].find_one({"email": body.email})
    # Always run one hash so unknown emails and wrong passwords look the same.
    matched = verify_password(body.password, user.get("password", "") if user else DUMMY_HASH)
    if not user or not matched:
        logger.info("Failed login attempt")
        raise ApiError(401, "Invalid email or password", key="message")

    return {"message": "Login Successful", "userId": str(user["_id"]), "name": user.get("name")}


# -----------------------------
# Task endpoints
# -----------------------------
@router.post("/tasks", status_code=201)
def create_task(body: TaskCreate, db: Database = Depends(get_db)):
    user_id = to_object_id(body.userId)
    if user_id is None:
        raise ApiError(400, "Invalid userId")
    task = Task(**body.model_dump())
    payload = task.model_dump(exclude={"id", "createdAt"})
    payload["userId"] = user_id
    return serialize(create_document(db, TASKS, payload))


@router.get("/tasks/{user_id}")
def list_tasks(user_id: str, db: Database = Depends(get_db)):
    oid = to_object_id(user_id)
    if oid is None:
        return []
    return [serialize(t) for t in get_documents(db, TASKS, {"userId": oid})]


@router.put("/tasks/{task_id}")
def complete_task(
    task_id: str,
    background: BackgroundTasks,
    db: Database = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    oid = to_object_id(task_id)
    if oid is None:
        raise ApiError(404, "Task not found", key="message")
    task = db[TASKS].find_one_and_update(
        {"_id": oid},
        {"$set": {"isCompleted": True}},
        return_document=ReturnDocument.AFTER,
    )
    if not task:
        raise ApiError(404, "Task not found", key="message")

    # Runs after the response has been sent; failures are logged there.
    background.add_task(notifier.task_completed, task)
    logger.info("Task %s completed", oid)
    return {"message": "Task completed and email sent!", "task": serialize(task)}


@router.delete("/tasks/{task_id}")
def delete_task(task_id: str, db: Database = Depends(get_db)):
    oid = to_object_id(task_id)
    deleted = db[TASKS].find_one_and_delete({"_id": oid}) if oid is not None else None
    if not deleted:
        raise ApiError(404, "Task not found", key="message")
    return {"message": "Task deleted successfully"}


# -----------------------------
# Health/Test
# -----------------------------
health = APIRouter()


@health.get("/")
def read_root():
    return {"message": "LifeTrack API running"}


@health.get("/test")
def test_database(request: Request):
    settings: Settings = request.app.state.settings
    db = request.app.state.db
    response: Dict[str, Any] = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_name": settings.database_name,
        "email": "✅ Configured" if settings.email_configured else "❌ Not Set",
        "collections": [],
    }
    try:
        response["collections"] = db.list_collection_names()[:10]
        response["database"] = "✅ Connected & Working"
    except PyMongoError as e:
        response["database"] = f"⚠️ Connected but Error: {str(e)[:50]}"
    return response


# -----------------------------
# Application
# -----------------------------
def create_app(
    settings: Optional[Settings] = None,
    *,
    db: Optional[Database] = None,
    mailer: Optional[Mailer] = None,
) -> FastAPI:
    """
    Build the API with explicit dependencies.

    ``db`` and ``mailer`` default to a Mongo handle and an SMTP mailer built
    from ``settings``; tests pass their own.
    """
    settings = settings or Settings.from_env()
    owns_db = db is None
    if db is None:
        db = connect(settings)
    if mailer is None and settings.email_configured:
        mailer = SmtpMailer(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_db:
            db.client.close()

    app = FastAPI(title="LifeTrack API", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db
    app.state.notifier = NotificationDispatcher(db, mailer)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ApiError, _handle_api_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(PyMongoError, _handle_store_error)

    app.include_router(health)
    app.include_router(router)
    return app


if __name__ == "__main__":
    import uvicorn

    from logging_setup import setup_logging

    settings = Settings.from_env()
    setup_logging(settings.log_level)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
