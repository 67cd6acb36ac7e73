from fastapi import FastAPI

from .app_logger import get_logger
from .db import Base, engine, get_db
from .cleanup import purge_orphaned_rows
from .oversight import sync_all_leads
from .settings import settings
from .routers import auth
from .routers import students
from .routers import check_ins
from .routers import evaluations
from .routers import meetings
from .routers import progress
from .routers import reports
from .routers import dashboard
from .routers import team
from .routers import oversight
import asyncio

logger = get_logger("main")

app = FastAPI(title="Caseload Manager API")
app.include_router(auth.router)
app.include_router(students.router)
app.include_router(check_ins.router)
app.include_router(evaluations.router)
app.include_router(meetings.router)
app.include_router(progress.router)
app.include_router(reports.router)
app.include_router(dashboard.router)
app.include_router(team.router)
app.include_router(oversight.router)


@app.get("/info")
def root():
	return {"status": "ok", "oversight_sync_enabled": settings.oversight_sync_enabled}


def _run_oversight_sync() -> None:
	db = next(get_db())
	try:
		count = sync_all_leads(db)
		logger.info("Oversight sync finished for %d leads", count)
	finally:
		db.close()


async def _oversight_watcher():
	# Nightly batch; each run blocks a worker thread, not the event loop
	while True:
		await asyncio.sleep(24 * 60 * 60)
		try:
			await asyncio.to_thread(_run_oversight_sync)
		except Exception:
			logger.exception("Oversight sync run failed")


@app.on_event("startup")
async def startup_event():
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
	# Best-effort orphan cleanup at startup
	db = next(get_db())
	try:
		purge_orphaned_rows(db)
	except Exception:
		logger.exception("Orphan cleanup failed")
	finally:
		db.close()
	if settings.oversight_sync_enabled:
		asyncio.create_task(_oversight_watcher())
