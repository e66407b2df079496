"""Capture Contracts — tests for feedback reason normalization."""

import pytest

from verifyflow.core.capture import normalize_feedback_reason
from verifyflow.core.domain_types import DocumentSide, FeedbackReason


@pytest.mark.parametrize("raw, expected", [
    ("FACE_NOT_FOUND", FeedbackReason.FACE_NOT_FOUND),
    ("blurry_image", FeedbackReason.BLURRY_IMAGE),
    ("Low_Light", FeedbackReason.LOW_LIGHT),
    ("IMAGE_WITH_REFLECTION", FeedbackReason.IMAGE_WITH_REFLECTION),
    (FeedbackReason.BLURRY_IMAGE, FeedbackReason.BLURRY_IMAGE),
])
def test_known_reasons_pass_through(raw, expected):
    assert normalize_feedback_reason(raw, DocumentSide.FRONT) is expected


def test_unknown_reason_maps_to_side_not_found():
    assert (
        normalize_feedback_reason("NO_DOCUMENT", DocumentSide.FRONT)
        is FeedbackReason.FRONT_OF_DOCUMENT_NOT_FOUND
    )
    assert (
        normalize_feedback_reason("NO_DOCUMENT", DocumentSide.BACK)
        is FeedbackReason.BACK_OF_DOCUMENT_NOT_FOUND
    )


def test_side_specific_reason_is_recomputed_for_actual_side():
    assert (
        normalize_feedback_reason(FeedbackReason.FRONT_OF_DOCUMENT_NOT_FOUND, DocumentSide.BACK)
        is FeedbackReason.BACK_OF_DOCUMENT_NOT_FOUND
    )


def test_missing_reason_is_document_not_found():
    assert normalize_feedback_reason(None, DocumentSide.BACK) is FeedbackReason.DOCUMENT_NOT_FOUND


def test_unknown_reason_without_side_is_document_not_found():
    assert normalize_feedback_reason("weird", None) is FeedbackReason.DOCUMENT_NOT_FOUND
