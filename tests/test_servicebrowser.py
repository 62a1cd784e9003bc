import pytest

from mediahub.servicebrowser import (
    Role,
    SimpleServiceBrowserModel,
    StaticServiceBrowserModel,
)


def test_static_model_creates_file_with_header(tmp_path):
    model = StaticServiceBrowserModel(tmp_path / "data")
    assert model.count() == 0
    text = (tmp_path / "data" / "services.conf").read_text()
    assert text.startswith("#")
    assert model.editable is True


def test_static_model_add_and_reload(tmp_path):
    model = StaticServiceBrowserModel(tmp_path)
    model.add_service("living", "10.0.0.2", "1234")
    model.add_service("kitchen", "10.0.0.3", "4321")

    reloaded = StaticServiceBrowserModel(tmp_path)
    assert reloaded.count() == 2
    assert reloaded.data(0, Role.DISPLAY) == "living"
    assert reloaded.data(0, Role.ADDRESS) == "10.0.0.2"
    assert reloaded.data(1, Role.PORT) == "4321"


def test_static_model_save_format(tmp_path):
    model = StaticServiceBrowserModel(tmp_path)
    model.add_service("box", "10.1.1.1", "99")
    lines = (tmp_path / "services.conf").read_text().splitlines()
    assert lines[1:] == ["box 10.1.1.1 99"]


def test_static_model_skips_comments(tmp_path):
    (tmp_path / "services.conf").write_text(
        "# a comment line\nalpha 1.2.3.4 80\n#other 5.6.7.8 90\nbeta 9.9.9.9 70\n"
    )
    model = StaticServiceBrowserModel(tmp_path)
    names = [model.data(row, Role.DISPLAY) for row in range(model.count())]
    assert names == ["alpha", "beta"]


def test_static_model_remove(tmp_path):
    model = StaticServiceBrowserModel(tmp_path)
    model.add_service("a", "1", "2")
    model.add_service("b", "3", "4")
    model.remove_service(0)
    assert model.count() == 1
    assert model.data(0, Role.DISPLAY) == "b"
    assert StaticServiceBrowserModel(tmp_path).count() == 1


@pytest.mark.parametrize("index", [-1, 1, 5])
def test_static_model_remove_out_of_range_ignored(tmp_path, index):
    model = StaticServiceBrowserModel(tmp_path)
    model.add_service("a", "1", "2")
    model.remove_service(index)
    assert model.count() == 1


def test_static_model_data_invalid(tmp_path):
    model = StaticServiceBrowserModel(tmp_path)
    model.add_service("a", "1", "2")
    assert model.data(3, Role.DISPLAY) is None
    assert model.data(0, 999) is None


def test_ping_datagram():
    model = SimpleServiceBrowserModel("myhost")
    assert model.ping_datagram() == b"QtMediaHub:Ping:myhost"


def test_ping_from_other_host_adds_device_and_replies():
    model = SimpleServiceBrowserModel("myhost")
    reply = model.process_datagram(b"QtMediaHub:Ping:other", "10.0.0.5")
    assert reply == b"QtMediaHub:Pong:myhost"
    assert model.count() == 1
    assert model.data(0, Role.DISPLAY) == "other"
    assert model.data(0, Role.ADDRESS) == "10.0.0.5"
    assert model.data(0, Role.PORT) == 1234


def test_own_ping_is_ignored():
    model = SimpleServiceBrowserModel("myhost")
    assert model.process_datagram(model.ping_datagram(), "10.0.0.1") is None
    assert model.count() == 0


def test_pong_adds_device_without_reply():
    model = SimpleServiceBrowserModel("myhost")
    assert model.process_datagram(b"QtMediaHub:Pong:peer", "10.0.0.7") is None
    assert model.data(0, Role.DISPLAY) == "peer"


@pytest.mark.parametrize(
    "datagram",
    [b"Other:Ping:x", b"QtMediaHub:Ping:", b"QtMediaHub:Pong:", b"QtMediaHub:Hello"],
)
def test_unrelated_datagrams_ignored(datagram):
    model = SimpleServiceBrowserModel("myhost")
    assert model.process_datagram(datagram, "10.0.0.1") is None
    assert model.count() == 0


def test_names_truncated():
    model = SimpleServiceBrowserModel("myhost")
    long_name = "n" * 50
    model.process_datagram(b"QtMediaHub:Pong:" + long_name.encode(), "10.0.0.1")
    name = model.data(0, Role.DISPLAY)
    assert len(name) == 30
    assert long_name.startswith(name)


def test_devices_sorted_and_replaced():
    model = SimpleServiceBrowserModel("myhost")
    model.add_device("zeta", "1")
    model.add_device("alpha", "2")
    model.add_device("zeta", "3")
    assert model.count() == 2
    assert [model.data(r, Role.DISPLAY) for r in range(2)] == ["alpha", "zeta"]
    assert model.data(1, Role.ADDRESS) == "3"


def test_device_limit():
    model = SimpleServiceBrowserModel("myhost")
    for number in range(40):
        model.add_device(f"dev{number:02d}", "ip")
    assert model.count() == 33
    assert model.data(33, Role.DISPLAY) is None