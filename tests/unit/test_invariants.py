import pytest

from core.invariants import (
    check_same_price,
    check_sorted_prices,
    first_descent,
    is_sorted_ascending,
    validate_price_array,
)
from core.prices import PriceState


def test_sorted_prices_pass():
    check_sorted_prices([300, 300, 500, 900, 1200], expected_count=5)


def test_descending_transition_is_reported():
    prices = [500, 300, 900, 300, 1200]

    assert is_sorted_ascending(prices) is False
    assert first_descent(prices) == 1
    with pytest.raises(AssertionError) as excinfo:
        check_sorted_prices(prices, expected_count=5)

    message = str(excinfo.value)
    assert "[300, 300, 500, 900, 1200]" in message
    assert "[500, 300, 900, 300, 1200]" in message


def test_later_descent_is_found():
    assert first_descent([300, 500, 900, 300, 1200]) == 3


def test_wrong_count_fails_before_order_check():
    with pytest.raises(AssertionError) as excinfo:
        check_sorted_prices([100, 200, 300], expected_count=5)
    assert "Expected 5 prices, got 3" in str(excinfo.value)


def test_equal_prices_pass():
    assert check_same_price(1500, 1500) is True


def test_unavailable_detail_price_skips():
    assert check_same_price(1500, PriceState.UNAVAILABLE) is False


def test_mismatch_names_both_prices():
    with pytest.raises(AssertionError) as excinfo:
        check_same_price(1500, 1600)
    assert "1500" in str(excinfo.value)
    assert "1600" in str(excinfo.value)


def test_empty_and_single_sequences_are_sorted():
    assert is_sorted_ascending([])
    assert is_sorted_ascending([42])


def test_validate_price_array():
    validate_price_array([100, 200], expected_length=2)

    with pytest.raises(AssertionError):
        validate_price_array([100, 0])
    with pytest.raises(AssertionError):
        validate_price_array([100], expected_length=2)


def test_validate_price_array_rejects_sentinel():
    with pytest.raises(AssertionError, match="not a number"):
        validate_price_array([1500, PriceState.UNAVAILABLE])
