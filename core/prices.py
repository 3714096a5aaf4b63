import re
from enum import Enum
from typing import Iterable, List, Optional, Union

from utils.config import SuiteConfig
from utils.logger import get_logger
from utils.retry import RetryPolicy

DEFAULT_UNAVAILABLE_TEXTS = ("--元",)

_THOUSANDS_SEPARATORS = re.compile(r"[,，]")
_LEADING_DIGITS = re.compile(r"^\d+")


class PriceState(Enum):
    UNAVAILABLE = "unavailable"


class PriceParseError(Exception):
    """Price text that is neither a number nor the "unavailable" placeholder."""

    def __init__(self, raw_text: Optional[str]):
        super().__init__(f"Cannot convert price {raw_text!r} to a number")
        self.raw_text = raw_text


def parse_price(text: Optional[str], unavailable_texts: Iterable[str] = DEFAULT_UNAVAILABLE_TEXTS) -> Union[int, PriceState]:
    """Turn a comma-grouped price such as ``"1,500元"`` into 1500.

    Only the leading digits count, so trailing currency units are ignored.
    The placeholder shown for missing prices yields ``PriceState.UNAVAILABLE``.
    """
    if text is None:
        raise PriceParseError(text)

    stripped = text.strip()
    if stripped in unavailable_texts:
        return PriceState.UNAVAILABLE

    match = _LEADING_DIGITS.match(_THOUSANDS_SEPARATORS.sub("", stripped))
    if not match:
        raise PriceParseError(text)
    return int(match.group(0), 10)


def _try_parse(text: Optional[str], unavailable_texts: Iterable[str]) -> Union[int, PriceState, PriceParseError]:
    try:
        return parse_price(text, unavailable_texts)
    except PriceParseError as e:
        return e


def read_price(page, test_id: str, config: SuiteConfig, nth: int = 0,
               policy: Optional[RetryPolicy] = None) -> Union[int, PriceState]:
    """Read one price element, re-reading once if it has not rendered a number yet.

    Returns the sentinel if the placeholder is still shown after the retry.
    """
    logger = get_logger()
    policy = policy or RetryPolicy.from_settings(config.settings["prices"].get("retry"))
    unavailable = config.unavailable_texts

    page.wait_for_test_id(test_id, timeout=config.timeout("medium"))

    def attempt():
        return _try_parse(page.text_of_test_id(test_id, nth), unavailable)

    result = policy.run(attempt, accept=lambda value: isinstance(value, int), sleep=page.wait)

    if isinstance(result, PriceParseError):
        logger.error(f"Unparseable price in {test_id}[{nth}]: {result.raw_text!r}")
        raise result
    if result is PriceState.UNAVAILABLE:
        logger.info(f"Price in {test_id}[{nth}] reported as unavailable")
    return result


def read_prices(page, test_id: str, config: SuiteConfig, limit: Optional[int] = None) -> List[int]:
    """Read up to ``limit`` prices in DOM order; every one must be a number."""
    unavailable = config.unavailable_texts
    page.wait_for_test_id(test_id, timeout=config.timeout("medium"))

    count = page.count_test_id(test_id)
    if limit is not None:
        count = min(count, limit)

    prices = []
    for index in range(count):
        text = page.text_of_test_id(test_id, index)
        if not text:
            continue
        value = parse_price(text, unavailable)
        if value is PriceState.UNAVAILABLE:
            raise PriceParseError(text)
        prices.append(value)

    get_logger().debug(f"Read {len(prices)} prices from {test_id}: {prices}")
    return prices


def read_listing_price(page, test_id: str, config: SuiteConfig, nth: int = 0) -> int:
    """Read one listing price; unlike detail pages, the listing must show a number."""
    value = read_price(page, test_id, config, nth=nth)
    if value is PriceState.UNAVAILABLE:
        raise PriceParseError(page.text_of_test_id(test_id, nth))
    return value
