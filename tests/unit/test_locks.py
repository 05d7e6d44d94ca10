import threading
import time

from directory_lib.backend.locks import KeyedLock, file_lock


def test_keyed_lock_serializes_same_key():
    locks = KeyedLock()
    active = []
    overlap = []

    def worker():
        with locks.hold('k'):
            active.append(1)
            if len(active) > 1:
                overlap.append(1)
            time.sleep(0.01)
            active.pop()

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert overlap == []
    # entries are dropped once nobody holds or waits for them
    assert len(locks) == 0


def test_keyed_lock_different_keys_do_not_block():
    locks = KeyedLock()
    with locks.hold('a'):
        done = threading.Event()

        def other():
            with locks.hold('b'):
                done.set()

        t = threading.Thread(target=other)
        t.start()
        assert done.wait(timeout=2)
        t.join()


def test_file_lock_creates_lock_file(tmp_path):
    path = tmp_path / 'nested' / '.lock'
    with file_lock(path):
        assert path.exists()
