import pytest

from cablerelay.pool import ChannelPool, Conn, PoolClosedError


class _FakeConn:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class _Factory:
    def __init__(self, fail_after=None):
        self.created = []
        self.fail_after = fail_after

    def __call__(self):
        if self.fail_after is not None and len(self.created) >= self.fail_after:
            raise OSError("cannot connect")
        conn = _FakeConn()
        self.created.append(conn)
        return conn


@pytest.mark.parametrize("initial, maximum", [(-1, 1), (0, 0), (3, 2)])
def test_invalid_capacity(initial, maximum):
    with pytest.raises(ValueError, match="invalid capacity settings"):
        ChannelPool(initial, maximum, _Factory())


def test_initial_fill():
    factory = _Factory()
    pool = ChannelPool(2, 3, factory)
    assert pool.available() == 2
    assert len(factory.created) == 2
    assert pool.busy() == 0


def test_get_reuses_idle_connection():
    factory = _Factory()
    pool = ChannelPool(1, 2, factory)
    conn = pool.get()
    assert conn.conn is factory.created[0]
    assert len(factory.created) == 1
    assert pool.available() == 0
    assert pool.busy() == 1


def test_get_creates_when_empty():
    factory = _Factory()
    pool = ChannelPool(0, 1, factory)
    conn = pool.get()
    assert factory.created == [conn.conn]


def test_close_returns_connection():
    factory = _Factory()
    pool = ChannelPool(1, 1, factory)
    conn = pool.get()
    conn.close()
    assert pool.available() == 1
    assert pool.busy() == 0
    assert not conn.conn.closed
    assert pool.get().conn is conn.conn


def test_full_pool_closes_extra_connection():
    pool = ChannelPool(0, 1, _Factory())
    first = pool.get()
    second = pool.get()
    first.close()
    second.close()
    assert pool.available() == 1
    assert not first.conn.closed
    assert second.conn.closed


def test_closed_pool():
    factory = _Factory()
    pool = ChannelPool(2, 2, factory)
    pool.close()
    with pytest.raises(PoolClosedError, match="pool is closed"):
        pool.get()
    assert pool.available() == 0
    assert all(conn.closed for conn in factory.created)


def test_returning_after_close_closes_connection():
    pool = ChannelPool(1, 1, _Factory())
    conn = pool.get()
    pool.close()
    conn.close()
    assert conn.conn.closed
    assert pool.busy() == 0


def test_factory_failure_on_fill():
    factory = _Factory(fail_after=1)
    with pytest.raises(RuntimeError, match="factory is not able to fill the pool"):
        ChannelPool(2, 2, factory)
    assert factory.created[0].closed


def test_factory_failure_on_get():
    pool = ChannelPool(0, 1, _Factory(fail_after=0))
    with pytest.raises(OSError, match="cannot connect"):
        pool.get()
    assert pool.busy() == 0


def test_nil_connection_rejected():
    pool = ChannelPool(0, 1, _Factory())
    with pytest.raises(ValueError, match="rejecting"):
        Conn(None, pool).close()