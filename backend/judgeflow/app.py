from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi import Depends

from .routers import auth, judge_routers, submission_routers, question_bank
from contextlib import asynccontextmanager
import logging
from .config import CORS_ALLOW_ORIGINS, LOG_LEVEL
from .db import create_db_and_tables
from .security import auth_backend, app_users
from .dependencies import users_router_permission
from .schemas.user_schema import UserCreate, UserRead, UserUpdate


logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # run once when app starts
    await create_db_and_tables()
    logger.info("Database tables ready")
    yield

app = FastAPI(title="JudgeFlow", lifespan=lifespan)


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,  # which sites can call this API
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Attach users router with small permission check. This router provides /users and /users/me
app.include_router(
    app_users.get_users_router(UserRead, UserUpdate),
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(users_router_permission)],
)


app.include_router(judge_routers.router, prefix="/api")
app.include_router(submission_routers.router, prefix="/api")
app.include_router(question_bank.router, prefix="/api")

# Auth routers
app.include_router(app_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"])
app.include_router(auth.router)
app.include_router(app_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
