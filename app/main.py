from fastapi import FastAPI
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from app.api.routes import router
from app.api.admin_routes import router as admin_router
from app.settings import settings
from app.llm.classifier import get_classifier
from app.observability.logging import log

app = FastAPI(title="Wallpaper Premium Verification API")

origins = [x.strip() for x in settings.CORS_ORIGINS.split(",") if x.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
app.include_router(admin_router)


@app.get("/")
def root():
    return {
        "status": "ok",
        "message": "Verification API is running. Use GET /plans and POST /attempts to start an unlock.",
    }


@app.get("/health")
def health():
    return {"status": "ok"}


# Unexpected errors never reach the client as raw detail
@app.exception_handler(Exception)
async def universal_exception_handler(request: Request, exc: Exception):
    log(event="unhandled_exception", path=request.url.path, error=type(exc).__name__, detail=str(exc))
    return JSONResponse(
        status_code=500,
        content={"detail": "Something went wrong. Please try again or contact support."},
    )


# Boot snapshot: which classifier will judge evidence in this process
log(event="boot", appEnv=settings.APP_ENV, classifier=get_classifier().name)
