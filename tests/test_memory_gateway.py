"""Tests for the in-memory ledger used by the CLI and the engine tests."""
import pytest

from conftest import run
from voucher_locator.errors import GatewayError
from voucher_locator.gateway.memory_gateway import InMemoryLedgerGateway
from voucher_locator.schemas import PartitionKey
from voucher_locator.utils.helpers import save_json


def test_from_file_numbers_vouchers(tmp_path) -> None:
    path = tmp_path / "ledger.json"
    save_json(
        {
            "partitions": [
                {"point_of_sale": 1, "voucher_type": 11,
                 "vouchers": [{"CbteFch": "20240101"}, {"CbteFch": "20240102"}]},
                {"point_of_sale": 1, "voucher_type": 13,
                 "vouchers": [{"CbteDesde": 7, "CbteFch": "20240105"}]},
                {"point_of_sale": 2, "voucher_type": 11, "vouchers": []},
            ]
        },
        path,
    )
    gateway = InMemoryLedgerGateway.from_file(path)

    assert run(gateway.fetch_last_index(PartitionKey(point_of_sale=1, voucher_type=11))) == 2
    assert run(gateway.fetch_last_index(PartitionKey(point_of_sale=1, voucher_type=13))) == 7
    assert run(gateway.fetch_last_index(PartitionKey(point_of_sale=2, voucher_type=11))) == 0
    payload = run(gateway.fetch_by_index(2, PartitionKey(point_of_sale=1, voucher_type=11)))
    assert payload == {"CbteFch": "20240102"}
    assert run(gateway.health_check()) is True


def test_unknown_partition_and_index(ten_day_ledger) -> None:
    other = PartitionKey(point_of_sale=9, voucher_type=1)
    assert run(ten_day_ledger.fetch_last_index(other)) == 0
    assert run(ten_day_ledger.fetch_by_index(1, other)) is None


def test_scripted_failures(partition) -> None:
    gateway = InMemoryLedgerGateway.from_dates(
        partition, ["20240101", "20240102"], failing_indices=[1], missing_indices=[2], fail_last_index=True
    )
    with pytest.raises(GatewayError):
        run(gateway.fetch_by_index(1, partition))
    assert run(gateway.fetch_by_index(2, partition)) is None
    with pytest.raises(GatewayError):
        run(gateway.fetch_last_index(partition))
    assert gateway.fetch_calls == [1, 2]
    assert gateway.last_index_calls == 1


def test_returned_payload_is_a_copy(ten_day_ledger, partition) -> None:
    payload = run(ten_day_ledger.fetch_by_index(1, partition))
    payload["CbteFch"] = "19990101"
    assert run(ten_day_ledger.fetch_by_index(1, partition))["CbteFch"] == "20240101"
