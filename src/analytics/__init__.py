from .aggregator import DetectionSummary, ResultAggregator, format_summary

__all__ = ["DetectionSummary", "ResultAggregator", "format_summary"]
