import io

import pytest

from directory_lib.backend.memory_backend import MemoryBackend
from directory_lib.errors import InvalidLookupError, StaleRecordError
from directory_lib.models import Deploy, Dev, DevState, Infra, InfraState, Lookup
from directory_lib.testing import verify_backend


def test_memory_backend_conformance():
    verify_backend(MemoryBackend())


def test_put_returns_copy_and_leaves_caller_untouched():
    m = MemoryBackend()
    infra = Infra(lookup=Lookup(infra='aws'), outputs={'vpc': 'vpc-1'})

    stored = m.put_infra(infra)
    assert infra.id == ''
    assert stored.id

    # mutating either object must not leak into stored state
    infra.outputs['vpc'] = 'changed'
    stored.outputs['vpc'] = 'changed'
    assert m.get_infra(Lookup(infra='aws')).outputs == {'vpc': 'vpc-1'}


def test_get_returns_independent_copy():
    m = MemoryBackend()
    m.put_infra(Infra(lookup=Lookup(infra='aws'), outputs={'a': '1'}))
    got = m.get_infra(Lookup(infra='aws'))
    got.outputs['a'] = '2'
    assert m.get_infra(Lookup(infra='aws')).outputs == {'a': '1'}


def test_update_without_id_adopts_stored_id():
    m = MemoryBackend()
    first = m.put_dev(Dev(lookup=Lookup(app_id='app')))
    second = m.put_dev(Dev(lookup=Lookup(app_id='app'), state=DevState.READY))
    assert second.id == first.id
    assert m.get_dev(Lookup(app_id='app')).is_ready()


def test_stale_id_after_delete_is_rejected():
    m = MemoryBackend()
    dev = m.put_dev(Dev(lookup=Lookup(app_id='app')))
    m.delete_dev(dev)
    with pytest.raises(StaleRecordError):
        m.put_dev(dev)
    assert m.get_dev(dev) is None


def test_empty_foundation_is_same_as_no_foundation():
    m = MemoryBackend()
    stored = m.put_infra(Infra(lookup=Lookup(infra='aws', foundation=''), state=InfraState.PARTIAL))
    assert m.get_infra(Lookup(infra='aws')) == stored


def test_lookup_validation_per_entity_class():
    m = MemoryBackend()
    with pytest.raises(InvalidLookupError):
        m.get_infra(Lookup(app_id='app'))
    with pytest.raises(InvalidLookupError):
        m.put_deploy(Deploy(lookup=Lookup(app_id='app', infra='aws')))
    with pytest.raises(InvalidLookupError):
        m.delete_dev(Lookup(infra='aws'))


def test_put_rejects_wrong_record_type():
    m = MemoryBackend()
    with pytest.raises(TypeError):
        m.put_infra(Dev(lookup=Lookup(app_id='app', infra='aws')))


def test_blob_from_stream_and_overwrite():
    m = MemoryBackend()
    m.put_blob('k', io.BytesIO(b'first'))
    m.put_blob('k', b'second')
    with m.get_blob('k') as blob:
        assert blob.read_all() == b'second'
    assert blob.closed
