"""Unit tests for utility modules."""
import time

import pytest

from tree_ensemble.utils.error_handling import ErrorHandler, model_operation_context
from tree_ensemble.utils.exceptions import (
    ConfigurationError,
    DataValidationError,
    DimensionError,
    FileOperationError,
    FormatError,
    ModelIOError,
    ModelTrainingError,
    PerformanceError,
    TreeEnsembleError,
    create_error_context,
    handle_and_reraise,
    validate_parameter,
)
from tree_ensemble.utils.timer import (
    get_performance_stats,
    reset_performance_stats,
    timed_operation,
    timer,
)


@pytest.fixture(autouse=True)
def reset_stats():
    reset_performance_stats()
    yield
    reset_performance_stats()


class TestExceptions:
    """Test the exception hierarchy."""

    def test_message_format(self):
        """Test the exception message format."""
        error = ConfigurationError("bad value", error_code="PARAM_BAD", context={'parameter': 'eta'})
        assert str(error) == "[PARAM_BAD] bad value (Context: parameter=eta)"
        assert error.message == "bad value"

    def test_hierarchy(self):
        """Test the exception hierarchy."""
        assert issubclass(DimensionError, DataValidationError)
        assert issubclass(FormatError, FileOperationError)
        assert issubclass(ModelIOError, FileOperationError)
        assert issubclass(FileOperationError, TreeEnsembleError)

    def test_handle_and_reraise(self):
        """Test wrapping with context and a chained cause."""
        with pytest.raises(ModelIOError) as exc_info:
            try:
                raise OSError("disk full")
            except OSError as e:
                handle_and_reraise(e, ModelIOError, "Could not write model", error_code="WRITE_FAILED")

        error = exc_info.value
        assert isinstance(error.__cause__, OSError)
        assert error.context['original_error_type'] == 'OSError'
        assert error.error_code == "WRITE_FAILED"

    def test_validate_parameter(self):
        """Test parameter validation."""
        validate_parameter("eta", 0.3, min_value=0.0)
        validate_parameter("optional", None, min_value=1)
        with pytest.raises(ConfigurationError):
            validate_parameter("required", None, required=True)
        with pytest.raises(ConfigurationError):
            validate_parameter("kind", "x", valid_values=["a", "b"])
        with pytest.raises(ConfigurationError):
            validate_parameter("subsample", 2.0, max_value=1.0)

    def test_create_error_context(self):
        """Test error context creation."""
        class Thing:
            def __str__(self):
                return "thing"

        context = create_error_context(rows=3, owner=Thing())
        assert context == {'rows': 3, 'owner': 'thing'}


class TestErrorHandler:
    """Test operation error mapping."""

    @pytest.mark.parametrize("operation,expected", [
        ('grow_tree', ModelTrainingError),
        ('load_model', FileOperationError),
        ('validate_config', ConfigurationError),
        ('something_else', TreeEnsembleError),
    ])
    def test_foreign_errors_mapped(self, operation, expected):
        """Test that foreign errors are mapped by operation type."""
        with pytest.raises(expected) as exc_info:
            with ErrorHandler('Booster').operation_context(operation):
                raise RuntimeError("boom")

        assert exc_info.value.error_code == f"{operation.upper()}_FAILED"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_package_errors_pass_through(self):
        """Test that package errors are not wrapped."""
        original = DimensionError("wrong width")
        with pytest.raises(DimensionError) as exc_info:
            with model_operation_context('predict', component_name='Booster'):
                raise original
        assert exc_info.value is original

    def test_reraise_as(self):
        """Test wrapping into an explicit error class."""
        with pytest.raises(ModelTrainingError):
            with model_operation_context('custom_step', reraise_as=ModelTrainingError):
                raise KeyError("missing")

    def test_context_yields_details(self):
        """Test the details of the error context."""
        with model_operation_context('grow_tree', user_data={'round': 2}) as context:
            assert context.to_dict()['user_data'] == {'round': 2}


class TestTimer:
    """Test timing utilities."""

    def test_timer_records_stats(self):
        """Test that the timer records statistics."""
        @timer(name="unit_op")
        def work(x):
            return x * 2

        assert work(2) == 4
        work(3)

        stats = get_performance_stats("unit_op")
        assert stats['call_count'] == 2
        assert stats['min_time'] <= stats['max_time']

    def test_timer_reraises(self):
        """Test that the timer re-raises errors."""
        @timer(name="failing_op")
        def fail():
            raise ValueError("nope")

        with pytest.raises(ValueError):
            fail()
        assert get_performance_stats("failing_op") == {}

    def test_timer_timeout(self):
        """Test that exceeding the timeout raises PerformanceError."""
        @timer(name="slow_op", timeout=1e-6)
        def slow():
            time.sleep(0.01)

        with pytest.raises(PerformanceError):
            slow()

    def test_timed_operation(self):
        """Test the timed_operation context manager."""
        with timed_operation("block") as timing:
            time.sleep(0.005)

        assert timing['duration'] > 0
        assert get_performance_stats("block")['call_count'] == 1
