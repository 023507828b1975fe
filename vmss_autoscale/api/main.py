"""FastAPI application for autoscale analysis and simulation."""

import logging
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from vmss_autoscale import __version__
from vmss_autoscale.analysis import LoadPattern, LoadPatternAnalyzer
from vmss_autoscale.data import MetricSample, MetricSeries
from vmss_autoscale.exceptions import AutoscaleError
from vmss_autoscale.scaling import (
    AutoscaleConfigBuilder,
    BuildOptions,
    PredictiveScalingAdvisor,
    ScalingBias,
    ScalingSimulator,
    get_tuning,
)

logger = logging.getLogger(__name__)

# Constants
MAX_SAMPLES = 100_000
DEFAULT_TARGET_UTILIZATION = LoadPatternAnalyzer.DEFAULT_TARGET_UTILIZATION
DEFAULT_RESOURCE_URI = (
    "/subscriptions/00000000-0000-0000-0000-000000000000/resourceGroups/rg"
    "/providers/Microsoft.Compute/virtualMachineScaleSets/vmss"
)

app = FastAPI(
    title="VMSS Autoscale API",
    description="Load pattern analysis, autoscale configuration and scaling simulation for scale sets",
    version=__version__,
)


class SampleModel(BaseModel):
    """One metric sample.

    Numeric fields are strict: strings such as "50" are rejected.
    """

    timestamp: datetime
    cpu_percent: float = Field(..., ge=0, le=100, strict=True)
    memory_percent: float | None = Field(default=None, ge=0, le=100, strict=True)
    request_count: int | None = Field(default=None, ge=0, strict=True)


class AnalyzeRequest(BaseModel):
    """Request body for analysis endpoints."""

    samples: list[SampleModel] = Field(
        ...,
        description="Metric samples in ascending timestamp order",
        min_length=1,
        max_length=MAX_SAMPLES,
    )
    target_utilization: float = Field(
        default=DEFAULT_TARGET_UTILIZATION,
        description="Desired CPU percent per instance",
        gt=0,
        le=100,
    )


class ConfigRequest(AnalyzeRequest):
    """Request body for configuration endpoints."""

    target_resource_uri: str = Field(
        default=DEFAULT_RESOURCE_URI,
        description="Resource ID of the scale set",
    )
    predictive: bool = Field(default=False, description="Pre-provision ahead of cyclical peaks")
    bias: ScalingBias = Field(default=ScalingBias.BALANCED, description="Rule tuning bias")
    notification_emails: list[str] = Field(default_factory=list)
    lead_time_minutes: int = Field(default=15, ge=0, lt=24 * 60)

    @field_validator("target_resource_uri")
    @classmethod
    def validate_uri(cls, v: str) -> str:
        """Validate that the resource URI is not blank."""
        if not v.strip():
            raise ValueError("target_resource_uri must not be empty")
        return v

    def build_options(self) -> BuildOptions:
        return BuildOptions(
            predictive=self.predictive,
            bias=self.bias,
            notification_emails=tuple(self.notification_emails),
            lead_time_minutes=self.lead_time_minutes,
        )


class SimulateRequest(ConfigRequest):
    """Request body for simulation endpoint."""

    samples: list[SampleModel] = Field(
        ...,
        description="Metric samples in ascending timestamp order",
        min_length=2,
        max_length=MAX_SAMPLES,
    )
    hourly_rate_per_instance: float = Field(..., description="Cost of one instance hour", ge=0)
    initial_instances: int | None = Field(default=None, ge=0)
    compare_fixed: bool = Field(
        default=True,
        description="Whether to compare with fixed instance counts",
    )


class PatternResponse(BaseModel):
    """Response body for analyze endpoint."""

    pattern_type: str
    characteristics: dict
    scaling_recommendations: dict
    periodicity: dict | None = None
    trend: dict | None = None
    confidence: int
    sample_count: int


class ConfigResponse(BaseModel):
    """Response body for configuration endpoint."""

    pattern: PatternResponse
    configuration: dict
    warnings: list[str]


class RecommendationResponse(BaseModel):
    """Response body for predictive recommendation endpoint."""

    pattern_type: str
    should_enable_predictive: bool
    lead_time_minutes: int
    confidence: str
    rationale: str
    recommended_action: str
    benefits: list[str]
    risks: list[str]


class SimulateResponse(BaseModel):
    """Response body for simulation endpoint."""

    configuration_name: str
    summary: dict
    events: list[dict]
    comparison: dict | None = None


_analyzer = LoadPatternAnalyzer()
_builder = AutoscaleConfigBuilder()
_advisor = PredictiveScalingAdvisor()
_simulator = ScalingSimulator()


@app.exception_handler(AutoscaleError)
async def autoscale_error_handler(request: Request, exc: AutoscaleError):
    """Report domain validation failures as bad requests."""
    logger.info("Rejected %s: %s", request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def _to_series(samples: list[SampleModel]) -> MetricSeries:
    return MetricSeries([MetricSample(**s.model_dump()) for s in samples])


def _analyze(request: AnalyzeRequest) -> LoadPattern:
    return _analyzer.analyze(_to_series(request.samples), request.target_utilization)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "VMSS Autoscale API",
        "version": __version__,
        "endpoints": {
            "analyze": "POST /analyze",
            "autoscale_config": "POST /autoscale-config",
            "predictive_recommendation": "POST /predictive-recommendation",
            "simulate": "POST /simulate",
            "bias": "GET /bias/{bias}",
        },
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


@app.post("/analyze", response_model=PatternResponse)
async def analyze(request: AnalyzeRequest):
    """Classify the load pattern of a metric series."""
    pattern = _analyze(request)
    logger.info(
        "Analyzed %d samples: pattern=%s",
        pattern.sample_count, pattern.pattern_type.value,
    )
    return PatternResponse(**pattern.to_dict())


@app.post("/autoscale-config", response_model=ConfigResponse)
async def autoscale_config(request: ConfigRequest):
    """Build an autoscale configuration from a metric series."""
    pattern = _analyze(request)
    config = _builder.build(request.target_resource_uri, pattern, request.build_options())
    warnings = [w for profile in config.profiles for w in profile.warnings]

    logger.info(
        "Built configuration %s with %d profile(s)",
        config.name, len(config.profiles),
    )
    return ConfigResponse(
        pattern=PatternResponse(**pattern.to_dict()),
        configuration=config.to_dict(),
        warnings=warnings,
    )


@app.post("/predictive-recommendation", response_model=RecommendationResponse)
async def predictive_recommendation(request: AnalyzeRequest):
    """Advise whether predictive scaling suits the observed load."""
    pattern = _analyze(request)
    recommendation = _advisor.recommend(pattern)

    logger.info(
        "Predictive recommendation: action=%s, confidence=%s",
        recommendation.recommended_action.value, recommendation.confidence.value,
    )
    return RecommendationResponse(pattern_type=pattern.pattern_type.value, **recommendation.to_dict())


@app.post("/simulate", response_model=SimulateResponse)
async def simulate(request: SimulateRequest):
    """Simulate the generated configuration over the provided series.

    Analyzes the series, builds a configuration from it and replays the
    same series through that configuration.
    """
    series = _to_series(request.samples)
    pattern = _analyzer.analyze(series, request.target_utilization)
    config = _builder.build(request.target_resource_uri, pattern, request.build_options())

    simulation = _simulator.simulate(
        series,
        config,
        request.hourly_rate_per_instance,
        initial_instances=request.initial_instances,
    )

    comparison = None
    if request.compare_fixed:
        capacity = config.default_profile.capacity
        fixed_min = _simulator.simulate_fixed(series, capacity.minimum, request.hourly_rate_per_instance)
        fixed_max = _simulator.simulate_fixed(series, capacity.maximum, request.hourly_rate_per_instance)

        comparison = {
            "fixed_min_instances": {
                "instances": capacity.minimum,
                "total_cost": fixed_min.summary.total_cost,
            },
            "fixed_max_instances": {
                "instances": capacity.maximum,
                "total_cost": fixed_max.summary.total_cost,
            },
            "autoscale_savings_vs_max": _simulator.calculate_savings(simulation, fixed_max),
        }

    logger.info(
        "Simulated %s: events=%d, cost=%.2f",
        config.name, simulation.summary.total_scale_events, simulation.summary.total_cost,
    )
    return SimulateResponse(
        configuration_name=config.name,
        summary=simulation.summary.to_dict(),
        events=[e.to_dict() for e in simulation.events],
        comparison=comparison,
    )


@app.get("/bias/{bias}")
async def get_bias(bias: ScalingBias):
    """Get the rule tuning for a scaling bias."""
    return {
        "bias": bias.value,
        "tuning": get_tuning(bias).to_dict(),
    }


def run_server():
    """Run the FastAPI server with uvicorn."""
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level="info",
        timeout_graceful_shutdown=5,
    )


if __name__ == "__main__":
    run_server()
