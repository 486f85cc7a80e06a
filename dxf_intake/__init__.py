"""
dxf_intake: cut-geometry analysis of DXF designs for laser-cutting orders.

The main entry point is parse(content, sheet_width, sheet_height), which
never raises and returns a Metrics snapshot. The command line lives in
main.py.
"""

from dxf_intake.logging_config import (
    setup_logging,
    get_logger,
    configure_default_logging,
    log_timing,
    timed,
    LogContext,
)
from dxf_intake.metrics import Layer, MaterialCoverage, Metrics, QualityAssessment
from dxf_intake.pipeline import parse, run_pipeline
from dxf_intake.project_config import ProjectConfig, load_config

__all__ = [
    "parse",
    "run_pipeline",
    "Metrics",
    "Layer",
    "MaterialCoverage",
    "QualityAssessment",
    "ProjectConfig",
    "load_config",
    "setup_logging",
    "get_logger",
    "configure_default_logging",
    "log_timing",
    "timed",
    "LogContext",
]
