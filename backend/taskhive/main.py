"""
Taskhive - project and task management API with owner/team access control.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskhive.config import get_settings
from taskhive.database import init_db
from taskhive.exceptions import ERROR_RESPONSES, register_exception_handlers
from taskhive.logging_config import get_logger, setup_logging
from taskhive.routes import auth, projects, tasks, users

# Initialize logging
setup_logging()
logger = get_logger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    logger.info("Starting Taskhive API...")
    await init_db()
    logger.info("Database initialized")
    yield
    logger.info("Shutting down Taskhive API...")


app = FastAPI(
    title="Taskhive",
    description="Project and task management with owner/team access control",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register custom exception handlers
register_exception_handlers(app)

# Include routers
app.include_router(auth.router, prefix="/auth", tags=["Auth"], responses=ERROR_RESPONSES)
app.include_router(users.router, prefix="/users", tags=["Users"], responses=ERROR_RESPONSES)
app.include_router(projects.router, prefix="/projects", tags=["Projects"], responses=ERROR_RESPONSES)
app.include_router(tasks.router, prefix="/tasks", tags=["Tasks"], responses=ERROR_RESPONSES)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
