#!/usr/bin/env python3
"""
Unit tests for cache key quantization
"""

import pytest

from prompt_cache.key_generator import (
    CacheKeyGenerator,
    ContextDescriptor,
    DEFAULT_BAND,
    INCOME_BANDS,
    SAVINGS_BANDS,
    quantize,
)


def make_context(**overrides):
    fields = dict(
        user_id="u1",
        monthly_income=45000,
        monthly_expenses=25000,
        total_savings=12000,
        active_goals=2,
        language="en",
        crypto_enabled=False,
        experience_level="beginner",
    )
    fields.update(overrides)
    return ContextDescriptor(**fields)


class TestQuantize:
    """Band boundaries."""

    @pytest.mark.parametrize("value,band", [
        (0, "zero"),
        (0.0, "zero"),
        (1, "low"),
        (29999, "low"),
        (30000, "medium"),
        (79999.99, "medium"),
        (80000, "high"),
        (150000, "very-high"),
        (10 ** 9, "very-high"),
        (-500, "low"),
    ])
    def test_income_bands(self, value, band):
        assert quantize(value, INCOME_BANDS) == band

    def test_savings_boundary_goes_to_higher_band(self):
        assert quantize(4999, SAVINGS_BANDS) == "low"
        assert quantize(5000, SAVINGS_BANDS) == "medium"
        assert quantize(250000, SAVINGS_BANDS) == "very-high"

    @pytest.mark.parametrize("value", [None, "abc", float("nan"), object(), True, 10 ** 400])
    def test_unclassifiable_falls_back_to_default(self, value):
        assert quantize(value, INCOME_BANDS) == DEFAULT_BAND

    def test_numeric_string_is_classified(self):
        assert quantize("85000", INCOME_BANDS) == "high"


class TestCacheKeyGenerator:
    """Key construction."""

    @pytest.fixture
    def keygen(self):
        return CacheKeyGenerator()

    def test_key_layout(self, keygen):
        key = keygen.generate_cache_key(make_context())
        assert key == "u1:medium:medium:medium:2:en:false:beginner"

    def test_deterministic_keys(self, keygen):
        assert keygen.generate_cache_key(make_context()) == keygen.generate_cache_key(make_context())

    def test_same_band_same_key(self, keygen):
        a = make_context(monthly_income=31000, total_savings=6000)
        b = make_context(monthly_income=79000, total_savings=49000)
        assert keygen.generate_cache_key(a) == keygen.generate_cache_key(b)

    def test_band_boundary_changes_key(self, keygen):
        a = make_context(monthly_income=29999)
        b = make_context(monthly_income=30000)
        assert keygen.generate_cache_key(a) != keygen.generate_cache_key(b)

    def test_discrete_fields_verbatim(self, keygen):
        base = keygen.generate_cache_key(make_context())
        assert keygen.generate_cache_key(make_context(active_goals=3)) != base
        assert keygen.generate_cache_key(make_context(language="es")) != base
        assert keygen.generate_cache_key(make_context(crypto_enabled=True)) != base
        assert keygen.generate_cache_key(make_context(experience_level="expert")) != base

    def test_user_id_leads_key(self, keygen):
        assert keygen.generate_cache_key(make_context(user_id="alice")).startswith("alice:")

    def test_malformed_fields_do_not_raise(self, keygen):
        ctx = make_context(monthly_income="n/a", monthly_expenses=None, active_goals="many")
        assert keygen.generate_cache_key(ctx) == "u1:zero:zero:medium:0:en:false:beginner"

    def test_band_override(self):
        keygen = CacheKeyGenerator(bands={"monthly_income": ((1000, "tiny"),)})
        key = keygen.generate_cache_key(make_context(monthly_income=500))
        assert key.split(":")[1] == "tiny"


class TestContextDescriptor:
    def test_from_dict_camel_case(self):
        ctx = ContextDescriptor.from_dict({
            "userId": "u9",
            "monthlyIncome": 90000,
            "monthlyExpenses": 0,
            "totalSavings": 300000,
            "activeGoals": 1,
            "language": "de",
            "cryptoEnabled": True,
            "experienceLevel": "advanced",
        })
        assert ctx.user_id == "u9"
        key = CacheKeyGenerator().generate_cache_key(ctx)
        assert key == "u9:high:zero:very-high:1:de:true:advanced"

    def test_from_dict_defaults(self):
        ctx = ContextDescriptor.from_dict({"user_id": "u2"})
        assert ctx.language == "en"
        assert ctx.experience_level == "beginner"
        assert CacheKeyGenerator().generate_cache_key(ctx) == "u2:zero:zero:zero:0:en:false:beginner"

    def test_descriptor_is_immutable(self):
        ctx = make_context()
        with pytest.raises(AttributeError):
            ctx.user_id = "other"
