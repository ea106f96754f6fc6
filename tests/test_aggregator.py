"""
Tests for detection summaries.
"""

from analytics.aggregator import ResultAggregator, format_summary
from detection.labels import LabelTable
from models.detection import Detection


def det(class_index, confidence=0.5):
    return Detection(x=0.1, y=0.1, width=0.2, height=0.2, confidence=confidence, class_index=class_index)


class TestResultAggregator:
    """Tests for ResultAggregator.summarize."""

    def test_empty(self):
        """An empty set has no top detection and no classes."""
        summary = ResultAggregator().summarize([])

        assert summary.is_empty
        assert summary.detection_count == 0
        assert summary.top_detection is None
        assert summary.top1_class is None
        assert summary.top2_class is None
        assert summary.top_confidence_percent == 0
        assert summary.highlight is False
        assert summary.class_counts == (0,) * 18

    def test_top_detection_is_highest_confidence(self):
        detections = [det(0, 0.3), det(1, 0.9), det(2, 0.6)]

        summary = ResultAggregator().summarize(detections)

        assert summary.top_detection is detections[1]
        assert summary.top_confidence_percent == 90

    def test_top_detection_tie_keeps_first(self):
        detections = [det(4, 0.7), det(5, 0.7)]

        summary = ResultAggregator().summarize(detections)

        assert summary.top_detection is detections[0]

    def test_top_two_classes(self):
        detections = [det(3), det(3), det(3), det(7), det(7), det(1)]

        summary = ResultAggregator().summarize(detections)

        assert (summary.top1_class, summary.top1_count) == (3, 3)
        assert (summary.top2_class, summary.top2_count) == (7, 2)

    def test_leader_demoted_to_second(self):
        """A later class with more detections pushes the earlier leader down."""
        detections = [det(2), det(9), det(9)]

        summary = ResultAggregator().summarize(detections)

        assert summary.top1_class == 9
        assert summary.top2_class == 2

    def test_count_ties_go_to_lower_index(self):
        detections = [det(6), det(4)]

        summary = ResultAggregator().summarize(detections)

        assert summary.top1_class == 4
        assert summary.top2_class == 6

    def test_single_class_has_no_second(self):
        summary = ResultAggregator().summarize([det(5), det(5)])

        assert summary.top1_class == 5
        assert summary.top2_class is None
        assert summary.top2_count == 0

    def test_out_of_range_class_not_counted(self):
        summary = ResultAggregator().summarize([det(40, 0.9)])

        assert summary.detection_count == 1
        assert summary.top1_class is None
        assert summary.top_detection.class_index == 40

    def test_highlight_above_half(self):
        assert ResultAggregator().summarize([det(0, 0.51)]).highlight is True
        assert ResultAggregator().summarize([det(0, 0.5)]).highlight is False


class TestFormatSummary:
    """Tests for the summary panel text."""

    def test_empty(self):
        lines = format_summary(ResultAggregator().summarize([]), LabelTable(), 12.7)

        assert lines == ["No detections", "12ms"]

    def test_with_detections(self):
        summary = ResultAggregator().summarize([det(1, 0.876), det(1, 0.3), det(12, 0.4)])

        lines = format_summary(summary, LabelTable())

        assert lines == [
            "Detections: 3",
            "Top: 87%",
            "Most detected: FACE_FEMALE",
            "Count: 2",
            "Second: FACE_MALE",
            "Count: 1",
        ]
