"""Unit tests for the stock token generators."""

from __future__ import annotations

import pytest

from tokenkeeper.services._shared.ports import SequenceTokenGenerator, secure_token_generator


def test_secure_generator_yields_distinct_urlsafe_tokens():
    gen = secure_token_generator(16)
    tokens = {gen() for _ in range(50)}
    assert len(tokens) == 50
    assert all(t and ":" not in t and "/" not in t for t in tokens)


def test_sequence_generator_repeats_last_candidate():
    gen = SequenceTokenGenerator(["x", "y"])
    assert [gen(), gen(), gen()] == ["x", "y", "y"]
    assert gen.calls == 3


def test_sequence_generator_requires_candidates():
    with pytest.raises(ValueError):
        SequenceTokenGenerator([])
