"""Smoke tests for package imports."""

import clip_insight


def test_package_imports():
    """Test the public modules import."""
    from clip_insight.core.classifier import classify_locally
    from clip_insight.sdk import ClipAssistant

    assert clip_insight.__version__
    assert callable(classify_locally)
    assert ClipAssistant is not None
