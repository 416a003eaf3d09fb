"""Stage agents exposed for the pipeline, in execution order:
    1) WeatherAnalystAgent
    2) LoadForecastAgent
    3) GridStabilityAgent
    4) MarketOptimizerAgent
    5) SynthesisAgent
"""

from .base import AgentRunResult, BaseAgent, PipelineContext, classify_severity
from .load import LoadForecastAgent
from .market import MarketOptimizerAgent
from .stability import GridStabilityAgent
from .synthesis import SynthesisAgent
from .weather import WeatherAnalystAgent

__all__ = [
    "AgentRunResult",
    "BaseAgent",
    "PipelineContext",
    "classify_severity",
    "WeatherAnalystAgent",
    "LoadForecastAgent",
    "GridStabilityAgent",
    "MarketOptimizerAgent",
    "SynthesisAgent",
]
