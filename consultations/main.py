import asyncio
import contextlib
import logging
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from consultations.core import config
from consultations.core.clients import initialize_bridges
from consultations.core.errors import register_exception_handlers
from consultations.database import Base, SessionLocal, engine, ensure_schema
from consultations.models import appointment, room_teardown, user  # noqa: F401
from consultations.routes import (
    admin_routes,
    appointment_routes,
    auth_routes,
    payment_routes,
    user_routes,
    video_routes,
)
from consultations.services.teardown import process_due_teardowns

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)

app = FastAPI(title='Consultation Booking API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

register_exception_handlers(app)


def run_teardown_sweep() -> None:
    db = SessionLocal()
    try:
        process_due_teardowns(db, app.state.bridges.video, datetime.now())
    except Exception:
        db.rollback()
        logger.exception('Room teardown sweep failed.')
    finally:
        db.close()


async def teardown_sweep_loop() -> None:
    while True:
        await asyncio.to_thread(run_teardown_sweep)
        await asyncio.sleep(config.TEARDOWN_SWEEP_INTERVAL_SECONDS)


@app.on_event('startup')
async def startup() -> None:
    config.validate_runtime_config()
    app.state.bridges = initialize_bridges()

    try:
        Base.metadata.create_all(bind=engine)
        ensure_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')
        return

    if config.TEARDOWN_SWEEP_ENABLED:
        app.state.teardown_task = asyncio.create_task(teardown_sweep_loop())


@app.on_event('shutdown')
async def shutdown() -> None:
    task = getattr(app.state, 'teardown_task', None)
    if task is not None:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


@app.get('/')
def root():
    return {'status': 'Consultation Booking API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(payment_routes.router, prefix='/payments')
app.include_router(video_routes.router, prefix='/video-call')
app.include_router(user_routes.router, prefix='/user')
app.include_router(admin_routes.router, prefix='/admin')
