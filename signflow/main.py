from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .config import settings
from .database import engine, Base
from .errors import SignFlowError, signflow_error_handler
from .routers import users, documents, signing
import logging

# Configure logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


from contextlib import asynccontextmanager

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create database tables on startup"""
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully!")
    yield

app = FastAPI(title="SignFlow", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(SignFlowError, signflow_error_handler)


# Mount API routers
app.include_router(users.router, tags=["users"])
app.include_router(documents.router, prefix="/documents", tags=["documents"])
app.include_router(signing.router, prefix="/signing", tags=["signing"])


@app.get("/")
def read_root():
    return {"message": "SignFlow API"}

@app.get("/health")
def health_check():
    """Health check endpoint for debugging"""
    return {
        "status": "ok",
        "database": engine.url.get_backend_name(),
        "storage": "local",
    }
