"""
Tests for exam configuration and application settings validation.
"""

import pytest
from pydantic import ValidationError

from catexam.core.cat.exam_config import CategoryBounds, ExamConfig
from catexam.core.config import Settings


class TestExamConfigDefaults:
    def test_nclex_defaults(self):
        config = ExamConfig()
        assert config.min_questions == 60
        assert config.max_questions == 145
        assert config.time_limit_seconds == 18000
        assert config.passing_threshold == 0.0
        assert config.stopping_se == 0.30
        assert config.confidence_level == 0.95
        assert config.category_distribution == {}
        assert config.randomesque_k == 1

    def test_theta_bounds(self):
        assert ExamConfig().theta_bounds == (-4.0, 4.0)

    def test_frozen(self):
        with pytest.raises(ValidationError):
            ExamConfig().min_questions = 3


class TestExamConfigValidation:
    def test_min_above_max_rejected(self):
        with pytest.raises(ValidationError):
            ExamConfig(min_questions=20, max_questions=10)

    @pytest.mark.parametrize("level", [0.5, 1.0, 0.2])
    def test_confidence_level_range(self, level):
        with pytest.raises(ValidationError):
            ExamConfig(confidence_level=level)

    def test_threshold_outside_theta_bounds_rejected(self):
        with pytest.raises(ValidationError):
            ExamConfig(passing_threshold=5.0)

    def test_inverted_theta_bounds_rejected(self):
        with pytest.raises(ValidationError):
            ExamConfig(theta_min=1.0, theta_max=-1.0)

    def test_non_positive_time_limit_rejected(self):
        with pytest.raises(ValidationError):
            ExamConfig(time_limit_seconds=0)

    def test_category_bounds_range(self):
        with pytest.raises(ValidationError):
            CategoryBounds(min=5, max=2)

    def test_category_distribution_from_dicts(self):
        config = ExamConfig(
            category_distribution={"pharmacological_therapies": {"min": 2, "max": 8}}
        )
        bounds = config.category_distribution["pharmacological_therapies"]
        assert (bounds.min, bounds.max) == (2, 8)


class TestOverrides:
    def test_with_overrides_returns_new_config(self):
        base = ExamConfig(min_questions=5, max_questions=10)
        changed = base.with_overrides({"max_questions": 20})
        assert changed.max_questions == 20
        assert changed.min_questions == 5
        assert base.max_questions == 10

    def test_empty_overrides_return_same_config(self):
        base = ExamConfig()
        assert base.with_overrides(None) is base
        assert base.with_overrides({}) is base

    def test_invalid_override_rejected(self):
        with pytest.raises(ValidationError):
            ExamConfig(min_questions=5, max_questions=10).with_overrides(
                {"min_questions": 11}
            )

    def test_from_settings(self):
        config = ExamConfig.from_settings({"min_questions": 3, "max_questions": 7})
        assert (config.min_questions, config.max_questions) == (3, 7)

    def test_round_trip_through_json(self):
        config = ExamConfig(
            min_questions=2,
            max_questions=4,
            category_distribution={"management_of_care": CategoryBounds(max=3)},
        )
        assert ExamConfig.model_validate(config.model_dump(mode="json")) == config


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.API_V1_PREFIX == "/v1"
        assert settings.CAT_MIN_QUESTIONS <= settings.CAT_MAX_QUESTIONS

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("CAT_MAX_QUESTIONS", "75")
        assert Settings().CAT_MAX_QUESTIONS == 75

    def test_question_bounds_validated(self, monkeypatch):
        monkeypatch.setenv("CAT_MIN_QUESTIONS", "100")
        monkeypatch.setenv("CAT_MAX_QUESTIONS", "50")
        with pytest.raises(ValidationError):
            Settings()

    def test_invalid_log_level(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "VERBOSE")
        with pytest.raises(ValidationError):
            Settings()
