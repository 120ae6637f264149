"""Reconciliation stage and scan facade.

This module scores extraction results, compares and merges the barcode and
OCR outputs, and exposes the public ``scan`` / ``scan_single_method`` API.

Core Components:
    - scorer: Completeness, data quality and overall confidence
    - engine: Decision matrix, comparison and field merge
    - processor: HybridScanProcessor running both paths
    - config_loader: Root configuration (all modules)

Example:
    >>> from src.reconciliation import HybridScanProcessor
    >>> processor = HybridScanProcessor.from_config()
    >>> result = processor.scan(image)
    >>> print(result.to_dict())
"""

from .config_loader import (
    Config,
    ReconciliationConfig,
    ScoringConfig,
    get_default_config,
    load_config,
)
from .engine import ReconciliationEngine
from .processor import HybridScanProcessor
from .scorer import ConfidenceScorer, format_confidence, is_valid_date
from .types import ComparisonSummary, ConfidenceMetrics, ReconciledResult, ScanPolicy

__all__ = [
    # Types
    "ComparisonSummary",
    "ConfidenceMetrics",
    "ReconciledResult",
    "ScanPolicy",
    # Configuration
    "Config",
    "ReconciliationConfig",
    "ScoringConfig",
    "get_default_config",
    "load_config",
    # Components
    "ConfidenceScorer",
    "format_confidence",
    "is_valid_date",
    "ReconciliationEngine",
    "HybridScanProcessor",
]
