import re
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

from qrorder.services import order_number

ORDER_NUMBER_PATTERN = re.compile(r"^\d{8}-\d{3,}-[0-9A-Z]{8}$")


def test_order_number_format():
    now = datetime(2024, 3, 5, 12, 30, tzinfo=timezone.utc)

    number = order_number.generate(7, now=now)

    assert number.startswith("20240305-007-")
    assert ORDER_NUMBER_PATTERN.match(number)


def test_order_number_keeps_large_store_ids():
    number = order_number.generate(1234)

    assert number.split("-")[1] == "1234"


def test_concurrently_generated_order_numbers_are_unique():
    with ThreadPoolExecutor(max_workers=16) as executor:
        numbers = list(executor.map(lambda _: order_number.generate(1), range(10_000)))

    assert len(numbers) == 10_000
    assert len(set(numbers)) == 10_000
    assert all(ORDER_NUMBER_PATTERN.match(number) for number in numbers)


def test_access_token_is_64_hex_characters():
    tokens = {order_number.generate_access_token() for _ in range(100)}

    assert len(tokens) == 100
    assert all(re.fullmatch(r"[0-9a-f]{64}", token) for token in tokens)
