from typing import Optional, Protocol, runtime_checkable

from directory_lib.models import BlobData, Deploy, Dev, Infra, LookupLike


@runtime_checkable
class BackendProtocol(Protocol):
    """Directory backend protocol mirroring `directory_lib.backend.Backend`.

    Implementations should follow the semantics documented on the abstract
    base class in `directory_lib.backend.base` (None for absent records,
    id assigned once per Lookup, idempotent deletes, thread-safety).
    """

    def get_blob(self, name: str) -> Optional[BlobData]: ...

    def put_blob(self, name: str, source) -> None: ...

    def get_infra(self, lookup: LookupLike) -> Optional[Infra]: ...

    def put_infra(self, infra: Infra) -> Infra: ...

    def delete_infra(self, lookup: LookupLike) -> None: ...

    def get_deploy(self, lookup: LookupLike) -> Optional[Deploy]: ...

    def put_deploy(self, deploy: Deploy) -> Deploy: ...

    def delete_deploy(self, lookup: LookupLike) -> None: ...

    def get_dev(self, lookup: LookupLike) -> Optional[Dev]: ...

    def put_dev(self, dev: Dev) -> Dev: ...

    def delete_dev(self, lookup: LookupLike) -> None: ...

    def close(self) -> None: ...
