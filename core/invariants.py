from typing import Optional, Sequence, Union

from core.prices import PriceState


def is_sorted_ascending(values: Sequence[int]) -> bool:
    return all(values[i] >= values[i - 1] for i in range(1, len(values)))


def first_descent(values: Sequence[int]) -> Optional[int]:
    """Index of the first value smaller than its predecessor, if any."""
    for i in range(1, len(values)):
        if values[i] < values[i - 1]:
            return i
    return None


def check_sorted_prices(prices: Sequence[int], expected_count: int = 5) -> None:
    """Assert the listing shows exactly ``expected_count`` prices in ascending order."""
    if len(prices) != expected_count:
        raise AssertionError(
            f"Expected {expected_count} prices, got {len(prices)}: {list(prices)}"
        )

    if not is_sorted_ascending(prices):
        index = first_descent(prices)
        raise AssertionError(
            f"Prices are not in ascending order: expected {sorted(prices)}, got {list(prices)} "
            f"({prices[index - 1]} > {prices[index]} at index {index})"
        )


def check_same_price(listing_price: int, detail_price: Union[int, PriceState]) -> bool:
    """Assert the listing and detail pages agree on a price.

    Returns False when the detail page reports the price as unavailable, in
    which case there is nothing to compare.
    """
    if detail_price is PriceState.UNAVAILABLE:
        return False
    if listing_price != detail_price:
        raise AssertionError(
            f"Price mismatch: listing shows {listing_price}, detail page shows {detail_price}"
        )
    return True


def validate_price_array(prices: Sequence[int], expected_length: Optional[int] = None) -> None:
    if expected_length is not None and len(prices) != expected_length:
        raise AssertionError(f"Expected {expected_length} prices, got {len(prices)}")

    for index, price in enumerate(prices):
        if not isinstance(price, int) or isinstance(price, bool):
            raise AssertionError(f"Price at index {index} is not a number: {price!r}")
        if price <= 0:
            raise AssertionError(f"Price at index {index} must be positive, got {price}")
