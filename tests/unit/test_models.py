import io

import pytest

from directory_lib.errors import InvalidLookupError
from directory_lib.models import (
    BlobData,
    Deploy,
    DeployState,
    Dev,
    Infra,
    InfraState,
    Lookup,
    as_lookup,
)


def test_lookup_empty_components_normalize_to_none():
    assert Lookup(infra='foo', foundation='') == Lookup(infra='foo')
    assert Lookup(infra='foo').foundation is None


def test_lookup_absent_component_is_part_of_key():
    plain = Lookup(infra='foo')
    scoped = Lookup(infra='foo', foundation='bar')
    assert plain != scoped
    assert plain.key() != scoped.key()
    assert Lookup(infra='foo', foundation='bar').key() == scoped.key()


def test_lookup_rejects_non_string_components():
    with pytest.raises(InvalidLookupError):
        Lookup(infra=3)


def test_lookup_is_hashable_and_frozen():
    lookups = {Lookup(app_id='a'), Lookup(app_id='a'), Lookup(app_id='b')}
    assert len(lookups) == 2
    with pytest.raises(Exception):
        Lookup(app_id='a').app_id = 'b'


def test_check_lookup_requires_components():
    Infra.check_lookup(Lookup(infra='aws'))
    Deploy.check_lookup(Lookup(app_id='a', infra='aws', infra_flavor='vpc'))
    Dev.check_lookup(Lookup(app_id='a'))
    with pytest.raises(InvalidLookupError) as exc:
        Deploy.check_lookup(Lookup(app_id='a'))
    assert 'infra' in str(exc.value)
    with pytest.raises(InvalidLookupError):
        Dev.check_lookup('a')


def test_record_dict_form_is_plain_and_reversible():
    infra = Infra(
        lookup=Lookup(infra='aws', foundation='consul'),
        id='abc',
        state=InfraState.READY,
        outputs={'region': 'us-east-1'},
        opaque=b'\x00\x01',
    )
    d = infra.to_dict()
    assert d['state'] == 2
    assert isinstance(d['opaque'], str)
    assert d['lookup']['app_id'] is None
    assert Infra.from_dict(d) == infra


def test_deploy_state_helpers():
    d = Deploy(lookup=Lookup(app_id='a', infra='aws', infra_flavor='vpc'))
    assert d.is_new()
    d.state = DeployState.FAILED
    assert d.is_failed() and not d.is_deployed()
    assert Deploy.from_dict(d.to_dict()).state is DeployState.FAILED


def test_as_lookup_accepts_record_or_lookup():
    lookup = Lookup(app_id='a')
    assert as_lookup(lookup) is lookup
    assert as_lookup(Dev(lookup=lookup)) is lookup


def test_blob_data_close_is_idempotent(tmp_path):
    calls = []
    blob = BlobData('k', io.BytesIO(b'payload'), closer=lambda: calls.append(1))
    blob.write_to_file(tmp_path / 'out.bin')
    blob.close()
    blob.close()
    assert calls == [1]
    assert (tmp_path / 'out.bin').read_bytes() == b'payload'


def test_from_dict_rejects_non_mapping_values():
    with pytest.raises(ValueError):
        Lookup.from_dict('x')
    with pytest.raises(ValueError):
        Infra.from_dict({'lookup': 'x', 'id': '1'})
    with pytest.raises(ValueError):
        Dev.from_dict(['lookup'])
