"""Per-collision analysis tasks."""

from .lambda_polarization import LambdaJetPolarizationTask
from .upc_rho import UpcRhoAnalysisTask

__all__ = ["LambdaJetPolarizationTask", "UpcRhoAnalysisTask"]
