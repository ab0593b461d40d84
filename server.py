#!/usr/bin/env python3
"""
Voice Workbench FastAPI Server

Submits text to the MiniMax speech API, tracks synthesis jobs and serves the
finished audio. Status checks are polled by the client; there is no
background scheduler.
"""
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from starlette.staticfiles import StaticFiles

from workbench.config import APP_NAME, APP_VERSION, AUDIO_DIR, FILES_URL_PREFIX, SERVER_HOST, SERVER_PORT
from workbench.database import init_db, close_db
from workbench.exceptions import register_exception_handlers
from workbench.routers import health_router, keys_router, synthesis_router
from workbench.services.synthesis_orchestrator import get_orchestrator


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Startup:
        - Initialize database and create tables
        - Create the synthesis orchestrator

    Shutdown:
        - Close database connections
    """
    print(f'Starting {APP_NAME} v{APP_VERSION}...')

    print('Initializing database...')
    await init_db()

    get_orchestrator()

    print(f'Server ready at http://{SERVER_HOST}:{SERVER_PORT}')
    print('API documentation available at /docs')

    yield

    print('Shutting down...')
    await close_db()
    print('Shutdown complete.')


# Create FastAPI application
app = FastAPI(
    title=APP_NAME,
    description='Speech synthesis job service for the MiniMax API.',
    version=APP_VERSION,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Register routers
app.include_router(health_router)
app.include_router(keys_router)
app.include_router(synthesis_router)

# Generated audio; the directory is created by init_db
app.mount(FILES_URL_PREFIX, StaticFiles(directory=str(AUDIO_DIR), check_dir=False), name='files')


if __name__ == '__main__':
    uvicorn.run(
        app,
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=False,
        log_level='info',
    )
