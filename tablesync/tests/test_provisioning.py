import asyncio

import pytest

from tablesync.errors import InvalidPrefixError, ProvisioningError, ProvisioningTimeout
from tablesync.lifecycle import ConfirmationPoller, OperationSubmitter, TableProvisioner
from tablesync.models import ColumnSpec, OperationKind
from tablesync.tests.fakes import UNSEEN, confirmed, rejected


def _provisioner(network, *, default_timeout=None) -> TableProvisioner:
    return TableProvisioner(
        submitter=OperationSubmitter(network),
        poller=ConfirmationPoller(network),
        verifier=network,
        interval_ms=5,
        default_timeout=default_timeout,
    )


@pytest.mark.asyncio
async def test_create_table_resolves_name_and_fetched_schema(network, identity):
    network.plan(UNSEEN, confirmed("1"))

    descriptor = await _provisioner(network).create_table(identity, 1, "t")

    _, statement, kind = network.submissions[0]
    assert statement == 'CREATE TABLE "t" (id integer primary key, name text, block text, tx text);'
    assert kind is OperationKind.CREATE
    assert descriptor.name == "t_1_1"
    assert descriptor.resource_id == "1"
    assert descriptor.context_id == 1
    assert descriptor.column_names == ["id", "name", "block", "tx"]


@pytest.mark.asyncio
async def test_schema_comes_from_verifier_not_declaration(network, identity):
    network.plan(confirmed("7"))
    network.schemas["7"] = (
        ColumnSpec(name="id", type="int", constraints="PRIMARY KEY"),
        ColumnSpec(name="name", type="text"),
    )

    descriptor = await _provisioner(network).create_table(identity, 1, "my_table")

    assert descriptor.name == "my_table_1_7"
    assert [(c.name, c.type) for c in descriptor.columns] == [("id", "int"), ("name", "text")]


@pytest.mark.asyncio
async def test_timeout_is_distinct_from_success_and_stops_polling(network, identity):
    provisioner = _provisioner(network)

    with pytest.raises(ProvisioningTimeout) as excinfo:
        await provisioner.create_table(identity, 1, "slow", timeout=0.05)
    assert excinfo.value.code == "provisioning_timeout"

    calls = len(network.status_calls)
    await asyncio.sleep(0.03)
    assert len(network.status_calls) <= calls + 1


@pytest.mark.asyncio
async def test_default_timeout_applies(network, identity):
    with pytest.raises(ProvisioningTimeout):
        await _provisioner(network, default_timeout=0.02).create_table(identity, 1, "slow")


@pytest.mark.asyncio
async def test_rejected_create_raises_provisioning_error(network, identity):
    network.plan(rejected("table name already exists"))

    with pytest.raises(ProvisioningError) as excinfo:
        await _provisioner(network).create_table(identity, 1, "dup")

    assert not isinstance(excinfo.value, ProvisioningTimeout)
    assert "already exists" in str(excinfo.value)


@pytest.mark.asyncio
async def test_confirmation_without_table_id_is_an_error(network, identity):
    network.plan(confirmed())

    with pytest.raises(ProvisioningError) as excinfo:
        await _provisioner(network).create_table(identity, 1, "t")
    assert excinfo.value.code == "provisioning_no_table"


@pytest.mark.asyncio
@pytest.mark.parametrize("prefix", ["", "1abc", "bad-name", 'quote"d'])
async def test_invalid_prefix_is_rejected_before_submission(network, identity, prefix):
    with pytest.raises(InvalidPrefixError):
        await _provisioner(network).create_table(identity, 1, prefix)
    assert network.submissions == []
