from .renderer import ConfidenceTier, OverlayRenderer, confidence_tier, label_text

__all__ = ["ConfidenceTier", "OverlayRenderer", "confidence_tier", "label_text"]
