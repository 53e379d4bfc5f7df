from webylib import ports


def test_ports_are_distinct():
    urls = {ports.url(p) for p in (ports.SERVER_WEBCASH, ports.SERVER_RGB, ports.SERVER_VOUCHER)}
    assert len(urls) == 3


def test_ports_match_compose_file():
    assert ports.url(ports.SERVER_WEBCASH) == "http://localhost:8181"
    assert ports.url(ports.SERVER_RGB) == "http://localhost:8182"
    assert ports.url(ports.SERVER_VOUCHER) == "http://localhost:8183"


def test_url_format():
    assert ports.url(1) == "http://localhost:1"