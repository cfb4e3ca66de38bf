## Main application entry point
import logging
from pathlib import Path

from fastapi import Depends, FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from tas_builder.settings import APP_VERSION, settings
from tas_builder.errors import ConfigurationError
from tas_builder.generation.routes import router as generation_router
from tas_builder.deps import get_plan_store
from tas_builder.plans.routes import form_from_intake, render_intake_form, router as plans_router
from tas_builder.plans.store import PlanStore

BASE_DIR = Path(__file__).resolve().parent

logging.basicConfig(
    level=settings.log_level.upper(),
    format="[%(asctime)s] [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("tas_builder")

app = FastAPI(title="TAS Builder", version=APP_VERSION)

app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


@app.get("/", response_class=HTMLResponse)
def home(request: Request, store: PlanStore = Depends(get_plan_store)):
    # ?blank=1 skips the pre-fill from the last submitted intake
    last = None if request.query_params.get("blank") else store.last_intake()
    return render_intake_form(request, form=form_from_intake(last) if last else None)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error("Configuration error: %s", exc)
    if request.url.path.startswith("/api"):
        return JSONResponse({"error": "Server configuration error"}, status_code=500)
    return templates.TemplateResponse(request, "error.html", {
        "title": "Server configuration error",
        "message": "The plan generator is not configured. Ask an administrator to check the model settings.",
    }, status_code=500)


@app.exception_handler(RequestValidationError)
async def intake_validation_handler(request: Request, exc: RequestValidationError):
    # malformed API intake is a client error, not a generation outcome
    if request.url.path.startswith("/api"):
        return JSONResponse({
            "success": False,
            "error": "Invalid intake data",
            "details": [
                {"path": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                for err in exc.errors()
            ],
        }, status_code=400)
    return await request_validation_exception_handler(request, exc)


app.include_router(generation_router)
app.include_router(plans_router)
