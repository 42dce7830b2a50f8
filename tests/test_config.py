"""Tests for configuration, errors and logging setup.

Tests cover:
- RenderConfig defaults, validation and dictionary round trips
- The exception hierarchy
- setup_logging handlers
- init_taichi refusing to re-initialize
"""

import logging

import pytest


class TestRenderConfig:
    """Tests for RenderConfig."""

    def test_defaults(self):
        from prism.core.config import RenderConfig

        config = RenderConfig()
        assert config.max_depth == 5
        assert config.supersampling == 1
        assert config.workers is None
        assert config.band_rows == 16
        assert config.shadow_bias == pytest.approx(1e-4)
        assert config.background == (0.0, 0.0, 0.0)
        assert config.jitter_area_lights is False

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_depth": -1},
            {"max_depth": 17},
            {"supersampling": 0},
            {"supersampling": 9},
            {"workers": 0},
            {"band_rows": 0},
            {"shadow_bias": 0.0},
            {"background": (0.0, -1.0, 0.0)},
            {"arch": "tpu"},
        ],
    )
    def test_invalid_values_raise(self, kwargs):
        from prism.core.config import RenderConfig
        from prism.core.errors import SceneConfigError

        with pytest.raises(SceneConfigError):
            RenderConfig(**kwargs)

    def test_depth_limit_is_accepted(self):
        from prism.core.config import MAX_RECURSION_DEPTH, RenderConfig

        assert RenderConfig(max_depth=MAX_RECURSION_DEPTH).max_depth == MAX_RECURSION_DEPTH

    def test_from_dict(self):
        from prism.core.config import RenderConfig

        config = RenderConfig.from_dict({"max_depth": 3, "background": [0.1, 0.2, 0.3]})
        assert config.max_depth == 3
        assert config.background == (0.1, 0.2, 0.3)

    def test_from_dict_rejects_unknown_keys(self):
        from prism.core.config import RenderConfig
        from prism.core.errors import SceneConfigError

        with pytest.raises(SceneConfigError, match="title"):
            RenderConfig.from_dict({"max_depth": 3, "title": "room"})

    def test_to_dict_round_trip(self):
        from prism.core.config import RenderConfig

        config = RenderConfig(supersampling=2, workers=4, band_rows=8)
        restored = RenderConfig.from_dict(config.to_dict())
        assert restored == config


class TestErrors:
    """Tests for the exception hierarchy."""

    def test_scene_config_error_is_value_error(self):
        from prism.core.errors import PrismError, SceneConfigError

        assert issubclass(SceneConfigError, PrismError)
        assert issubclass(SceneConfigError, ValueError)

    def test_render_error_is_runtime_error(self):
        from prism.core.errors import PrismError, RenderError

        assert issubclass(RenderError, PrismError)
        assert issubclass(RenderError, RuntimeError)


class TestLogging:
    """Tests for setup_logging and init_taichi logging."""

    def test_setup_logging_sets_level(self):
        from prism.logging_config import setup_logging

        logger = setup_logging("prism.test_level", level="DEBUG")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_setup_logging_does_not_stack_handlers(self):
        from prism.logging_config import setup_logging

        setup_logging("prism.test_stack")
        logger = setup_logging("prism.test_stack", level="WARNING")
        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING

    def test_setup_logging_writes_file(self, tmp_path):
        from prism.logging_config import setup_logging

        log_file = tmp_path / "logs" / "render.log"
        logger = setup_logging("prism.test_file", level="INFO", log_file=log_file)
        logger.info("hello from the test")
        for handler in logger.handlers:
            handler.flush()
        assert "hello from the test" in log_file.read_text()
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)

    def test_unknown_level_falls_back_to_info(self):
        from prism.logging_config import setup_logging

        assert setup_logging("prism.test_fallback", level="LOUD").level == logging.INFO

    def test_init_taichi_twice_warns(self, monkeypatch, caplog):
        from prism.core import config as config_module

        monkeypatch.setattr(config_module, "_initialized", True)
        with caplog.at_level(logging.WARNING, logger="prism.core.config"):
            config_module.init_taichi()
        assert "already initialized" in caplog.text
