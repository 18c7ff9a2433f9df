from fastapi import FastAPI, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from contextlib import asynccontextmanager
import logging
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from schemas import LoginTelemetry, AnalysisResponse, ThresholdsResponse
from scoring import ScoringEngine, AnalysisResult
from features import TelemetryFeatureExtractor
from thresholds import load_thresholds
from policy import get_policy
from report import generate_report

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def build_engine() -> ScoringEngine:
    """Build the scoring engine from environment configuration."""
    thresholds = load_thresholds()
    policy = get_policy(thresholds=thresholds)
    return ScoringEngine(
        extractor=TelemetryFeatureExtractor(),
        thresholds=thresholds,
        policy=policy,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    app.state.engine = build_engine()
    logger.info(f"Scoring engine ready (policy={app.state.engine.policy.name.value})")

    yield


app = FastAPI(lifespan=lifespan)


# Add validation error handler
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # The body may contain the plaintext password: log the errors only
    errors = [{k: v for k, v in e.items() if k != "input"} for e in exc.errors()]
    logger.warning(f"Validation error on {request.url.path}: {len(errors)} errors")
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(errors)}
    )


def get_engine(request: Request) -> ScoringEngine:
    """Engine built at startup (built lazily when lifespan did not run)."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        engine = build_engine()
        request.app.state.engine = engine
    return engine


def run_analysis(engine: ScoringEngine, telemetry: LoginTelemetry) -> AnalysisResult:
    """Analyze, degrading to a neutral result instead of failing the login."""
    try:
        return engine.analyze(telemetry)
    except Exception:
        logger.exception("Login analysis failed, returning degraded result")
        return AnalysisResult.degraded()


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


@app.post("/analyze", response_model=AnalysisResponse)
async def api_analyze(req: LoginTelemetry, engine: ScoringEngine = Depends(get_engine)):
    """
    Score one login attempt as bot or human.
    """
    result = run_analysis(engine, req)
    return AnalysisResponse(**result.to_dict())


@app.post("/analyze/report", response_class=PlainTextResponse)
async def api_analyze_report(req: LoginTelemetry, engine: ScoringEngine = Depends(get_engine)):
    """
    Score one login attempt and render the text report.
    """
    result = run_analysis(engine, req)
    return generate_report(result, req)


@app.get("/thresholds", response_model=ThresholdsResponse)
async def api_thresholds(engine: ScoringEngine = Depends(get_engine)):
    """
    Active threshold table and decision policy.
    """
    return ThresholdsResponse(
        policy=engine.policy.name.value,
        thresholds=engine.thresholds.to_dict(),
    )
