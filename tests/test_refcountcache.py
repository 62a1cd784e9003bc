import threading

from mediahub.refcountcache import RefCountCache


class Resource:
    def __init__(self, key):
        self.key = key


def make_cache():
    created = []

    def factory(key):
        resource = Resource(key)
        created.append(resource)
        return resource

    return RefCountCache(factory), created


def test_first_ref_creates_object_from_key():
    cache, created = make_cache()
    resource = cache.ref("alpha")
    assert resource.key == "alpha"
    assert created == [resource]
    assert "alpha" in cache
    assert len(cache) == 1


def test_repeated_ref_shares_object():
    cache, created = make_cache()
    first = cache.ref("alpha")
    second = cache.ref("alpha")
    assert first is second
    assert len(created) == 1


def test_unref_unknown_key_is_false():
    cache, _ = make_cache()
    assert cache.unref("missing") is False


def test_object_lives_until_last_unref():
    cache, _ = make_cache()
    cache.ref("alpha")
    cache.ref("alpha")
    assert cache.unref("alpha") is True
    assert "alpha" in cache
    assert cache.unref("alpha") is True
    assert "alpha" not in cache
    assert cache.unref("alpha") is False


def test_ref_after_release_builds_new_object():
    cache, created = make_cache()
    first = cache.ref("alpha")
    cache.unref("alpha")
    second = cache.ref("alpha")
    assert first is not second
    assert len(created) == 2


def test_keys_are_independent():
    cache, _ = make_cache()
    a = cache.ref("a")
    b = cache.ref("b")
    assert a is not b
    cache.unref("a")
    assert "a" not in cache
    assert "b" in cache


def test_concurrent_refs_share_one_object():
    cache, created = make_cache()
    results = []
    lock = threading.Lock()

    def worker():
        resource = cache.ref("shared")
        with lock:
            results.append(resource)

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(created) == 1
    assert all(resource is created[0] for resource in results)
    releases = [cache.unref("shared") for _ in results]
    assert all(releases)
    assert "shared" not in cache