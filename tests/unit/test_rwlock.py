"""读写锁测试"""

import threading
import time

from costbook.utils.rwlock import ReadWriteLock


class TestReadWriteLock:
    def test_multiple_readers_concurrently(self) -> None:
        """多个读者可同时持有读锁"""
        lock = ReadWriteLock()
        barrier = threading.Barrier(3, timeout=5)
        errors: list[Exception] = []

        def reader() -> None:
            try:
                with lock.read():
                    # 三个线程都在读锁内才能通过 barrier
                    barrier.wait()
            except threading.BrokenBarrierError as exc:
                errors.append(exc)

        threads = [threading.Thread(target=reader) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert errors == []

    def test_writer_excludes_readers(self) -> None:
        lock = ReadWriteLock()
        events: list[str] = []
        writer_holding = threading.Event()

        def writer() -> None:
            with lock.write():
                writer_holding.set()
                time.sleep(0.05)
                events.append("write-done")

        def reader() -> None:
            writer_holding.wait(timeout=5)
            with lock.read():
                events.append("read")

        w = threading.Thread(target=writer)
        r = threading.Thread(target=reader)
        w.start()
        r.start()
        w.join(timeout=5)
        r.join(timeout=5)

        assert events == ["write-done", "read"]

    def test_release_after_exception(self) -> None:
        lock = ReadWriteLock()
        try:
            with lock.write():
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        # 写锁已释放，读锁可立即获取
        with lock.read():
            pass
