"""Tests for the exception hierarchy, logging helpers and properties."""

import logging
import pickle

import pytest

import abmkit
from abmkit import abm_logging
from abmkit.errors import (
    AbmError,
    CellOccupied,
    ConfigurationError,
    ExhaustedRetries,
    InvalidPosition,
    NotFound,
    SpaceError,
)
from abmkit.properties import Properties


class TestErrors:
    """Tests for the abmkit exceptions."""

    def test_version_prefix(self):
        """Test that messages carry the package version."""
        error = AbmError("something broke")

        assert str(error) == f"[abmkit {abmkit.__version__}] something broke"
        assert error.original_message == "something broke"
        assert error.abmkit_version == abmkit.__version__

    def test_configuration_error(self):
        """Test both call styles of ConfigurationError."""
        error = ConfigurationError("dims", "must be positive")
        assert error.param_name == "dims"
        assert "Invalid configuration for 'dims': must be positive" in str(error)

        error = ConfigurationError("Generic message")
        assert error.param_name is None
        assert "Generic message" in str(error)

        assert "Invalid configuration" in str(ConfigurationError())

    def test_hierarchy(self):
        """Test that errors derive from the closest builtin exception."""
        assert issubclass(NotFound, LookupError)
        assert issubclass(InvalidPosition, ValueError)
        assert issubclass(InvalidPosition, SpaceError)
        assert issubclass(CellOccupied, SpaceError)
        assert issubclass(ExhaustedRetries, SpaceError)
        for cls in (NotFound, InvalidPosition, CellOccupied, ExhaustedRetries, ConfigurationError):
            assert issubclass(cls, AbmError)

    def test_attributes(self):
        """Test the attributes stored on the errors."""
        assert NotFound(7).unique_id == 7
        assert InvalidPosition((1, 2), "outside").pos == (1, 2)

        error = CellOccupied((3, 4), 12)
        assert error.pos == (3, 4)
        assert error.occupant == 12
        assert "occupied by agent 12" in str(error)

        assert ExhaustedRetries(50).attempts == 50


class TestLogging:
    """Tests for the logging helpers."""

    def test_module_logger(self):
        """Test that module loggers live below the root logger."""
        logger = abm_logging.create_module_logger("abmkit.something")
        assert logger.name == "ABMKIT.abmkit.something"
        assert abm_logging.get_module_logger("abmkit.something") is logger
        assert abm_logging.get_rootlogger().name == abm_logging.LOGGER_NAME

    def test_method_logger(self, caplog):
        """Test that decorated calls are logged at debug level."""

        @abm_logging.function_logger("abmkit.test")
        def add(a, b):
            return a + b

        with caplog.at_level(logging.DEBUG, logger=abm_logging.LOGGER_NAME):
            assert add(1, b=2) == 3
        assert "calling add with (1,) and {'b': 2}" in caplog.text

    def test_model_construction_is_logged(self, caplog):
        """Test that model construction and agent registration are logged."""
        with caplog.at_level(logging.DEBUG, logger=abm_logging.LOGGER_NAME):
            model = abmkit.StandardModel(rng=1)
            model.add_agent(kind="a")
        assert "calling Model.__init__" in caplog.text
        assert "registered agent 1" in caplog.text

    def test_log_to_stderr(self):
        """Test that log_to_stderr adds a single handler."""
        logger = abm_logging.log_to_stderr(logging.INFO)
        abm_logging.log_to_stderr(logging.INFO)
        stream_handlers = [
            handler
            for handler in logger.handlers
            if isinstance(handler, logging.StreamHandler)
        ]
        assert len(stream_handlers) == 1
        assert logger.level == logging.INFO
        for handler in stream_handlers:
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)


class TestProperties:
    """Tests for Properties."""

    def test_mapping_and_attribute_access(self):
        """Test that values can be read as items and attributes."""
        properties = Properties({"a": 1}, b=2)

        assert properties["a"] == 1
        assert properties.b == 2
        assert len(properties) == 2
        assert set(properties) == {"a", "b"}

        properties.c = 3
        assert properties["c"] == 3
        del properties.a
        assert "a" not in properties

        with pytest.raises(AttributeError):
            _ = properties.missing

    def test_model_is_not_a_value(self):
        """Test that the model back reference is not part of the mapping."""
        properties = Properties(a=1)
        properties.model = "model"

        assert properties.to_dict() == {"a": 1}
        assert properties.model == "model"

    def test_pickle(self):
        """Test that properties survive pickling."""
        properties = Properties(a=1, b=[1, 2])
        restored = pickle.loads(pickle.dumps(properties))

        assert restored.to_dict() == {"a": 1, "b": [1, 2]}
        assert restored.model is None
