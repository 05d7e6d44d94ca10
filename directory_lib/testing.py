"""Conformance checks every directory backend must pass.

Usage from a test module::

    from directory_lib.testing import verify_backend

    def test_my_backend(tmp_path):
        verify_backend(MyBackend(tmp_path))

Each check raises `AssertionError` describing the first violation. The
checks expect a fresh, empty backend instance.
"""
from __future__ import annotations
import io
import threading
from typing import List

from directory_lib.backend.base import Backend
from directory_lib.errors import StaleRecordError
from directory_lib.models import Deploy, DeployState, Dev, DevState, Infra, InfraState, Lookup


def _fail(msg: str, *args) -> None:
    raise AssertionError(msg % args if args else msg)


def verify_blobs(b: Backend) -> None:
    data = b.get_blob("foo")
    if data is not None:
        data.close()
        _fail("get_blob should return None for unknown blob")

    b.put_blob("foo", b"bar")

    data = b.get_blob("foo")
    if data is None:
        _fail("get_blob returned None after put_blob")
    with data:
        contents = data.read_all()
    if contents != b"bar":
        _fail("get_blob bad data: %r", contents)

    # overwrite: last write wins
    b.put_blob("foo", io.BytesIO(b"baz qux"))
    data = b.get_blob("foo")
    if data is None:
        _fail("get_blob returned None after overwrite")
    with data:
        contents = data.read_all()
    if contents != b"baz qux":
        _fail("get_blob after overwrite bad data: %r", contents)


def _verify_infra_lookup(b: Backend, lookup: Lookup) -> Infra:
    infra = Infra(lookup=lookup)
    if b.get_infra(infra) is not None:
        _fail("get_infra %s (non-exist): infra should be None", lookup)

    infra.outputs = {"foo": "bar"}
    if infra.id != "":
        _fail("put_infra: id should be empty before set")
    stored = b.put_infra(infra)
    if not stored.id:
        _fail("put_infra: infra id not set")
    if infra.id != "":
        _fail("put_infra must not mutate the caller's record")

    actual = b.get_infra(lookup)
    if actual != stored:
        _fail("get_infra (exist) bad: %r", actual)
    return stored


def verify_infra(b: Backend) -> None:
    plain = _verify_infra_lookup(b, Lookup(infra="foo"))
    scoped = _verify_infra_lookup(b, Lookup(infra="foo", foundation="bar"))
    if plain.id == scoped.id:
        _fail("infra with and without foundation share id %s", plain.id)
    if b.get_infra(Lookup(infra="foo")) != plain:
        _fail("storing the foundation-scoped infra changed the unscoped one")


def verify_deploy(b: Backend) -> None:
    deploy = Deploy(lookup=Lookup(app_id="foo", infra="bar", infra_flavor="baz"))
    if b.get_deploy(deploy) is not None:
        _fail("get_deploy (non-exist): result should be None")

    if deploy.id != "":
        _fail("put_deploy: id should be empty before set")
    stored = b.put_deploy(deploy)
    if not stored.id:
        _fail("put_deploy: deploy id not set")

    actual = b.get_deploy(deploy)
    if actual != stored:
        _fail("get_deploy (exist) bad: %r", actual)


def verify_dev(b: Backend) -> None:
    dev = Dev(lookup=Lookup(app_id="foo"))
    if b.get_dev(dev) is not None:
        _fail("get_dev (non-exist): result should be None")

    if dev.id != "":
        _fail("put_dev: id should be empty before set")
    stored = b.put_dev(dev)
    if not stored.id:
        _fail("put_dev: dev id not set")

    actual = b.get_dev(dev)
    if actual != stored:
        _fail("get_dev (exist) bad: %r", actual)

    b.delete_dev(dev)
    if b.get_dev(dev) is not None:
        _fail("get_dev after delete: result should be None")

    # deleting again is a no-op
    b.delete_dev(dev)


def verify_idempotent_put(b: Backend) -> None:
    lookup = Lookup(infra="idem")
    first = b.put_infra(Infra(lookup=lookup, outputs={"a": "1"}))
    second = b.put_infra(Infra(lookup=lookup, outputs={"a": "1"}))
    if second.id != first.id:
        _fail("repeated put minted a second id: %s != %s", first.id, second.id)

    updated = b.put_infra(Infra(lookup=lookup, id=first.id, state=InfraState.READY, outputs={"a": "2"}))
    if updated.id != first.id:
        _fail("update changed id: %s != %s", first.id, updated.id)
    actual = b.get_infra(lookup)
    if actual is None or actual.id != first.id or actual.outputs != {"a": "2"} or not actual.is_ready():
        _fail("update not reflected by get_infra: %r", actual)

    try:
        b.put_infra(Infra(lookup=lookup, id=first.id + "x"))
    except StaleRecordError:
        pass
    else:
        _fail("put with a mismatched id should raise StaleRecordError")
    if b.get_infra(lookup) != actual:
        _fail("rejected put changed stored state")


def verify_recreate_after_delete(b: Backend) -> None:
    lookup = Lookup(app_id="recreate")
    old = b.put_dev(Dev(lookup=lookup))
    b.delete_dev(lookup)
    new = b.put_dev(Dev(lookup=lookup, state=DevState.READY))
    if not new.id or new.id == old.id:
        _fail("recreate after delete reused id %s", old.id)
    if b.get_dev(lookup) != new:
        _fail("get_dev after recreate bad")

    deploy_lookup = Lookup(app_id="recreate", infra="aws", infra_flavor="simple")
    b.put_deploy(Deploy(lookup=deploy_lookup, state=DeployState.DEPLOYED))
    b.delete_deploy(deploy_lookup)
    if b.get_deploy(deploy_lookup) is not None:
        _fail("get_deploy after delete: result should be None")


def verify_concurrent_put(b: Backend, workers: int = 8) -> None:
    lookup = Lookup(app_id="concurrent", infra="aws", infra_flavor="vpc")
    barrier = threading.Barrier(workers)
    ids: List[str] = []
    errors: List[BaseException] = []
    lock = threading.Lock()

    def worker(n: int) -> None:
        try:
            barrier.wait()
            stored = b.put_deploy(Deploy(lookup=lookup, data={"worker": str(n)}))
            with lock:
                ids.append(stored.id)
        except BaseException as e:
            with lock:
                errors.append(e)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    if errors:
        _fail("concurrent put raised: %r", errors[0])
    if len(set(ids)) != 1:
        _fail("concurrent put minted %d ids: %s", len(set(ids)), sorted(set(ids)))
    final = b.get_deploy(lookup)
    if final is None or final.id != ids[0]:
        _fail("settled deploy id does not match: %r", final)


def verify_backend(b: Backend) -> None:
    """Run the full conformance sequence against a fresh backend."""
    verify_blobs(b)
    verify_infra(b)
    verify_deploy(b)
    verify_dev(b)
    verify_idempotent_put(b)
    verify_recreate_after_delete(b)
    verify_concurrent_put(b)
