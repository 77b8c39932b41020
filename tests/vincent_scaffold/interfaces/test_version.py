import subprocess
import sys

import httpx

from vincent_scaffold.interfaces.scaffold.version import (
    check_for_updates,
    install_version,
    upgrade_command,
)


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_newer_release_is_reported():
    def handler(request):
        assert request.url.path == "/pypi/vincent-scaffold/json"
        return httpx.Response(200, json={"info": {"version": "0.5.0"}})

    info = check_for_updates("0.4.0", client=_client(handler))
    assert info.has_update is True
    assert info.latest_version == "0.5.0"


def test_same_version_is_not_an_update():
    info = check_for_updates("0.4.0", client=_client(lambda r: httpx.Response(200, json={"info": {"version": "0.4.0"}})))
    assert info.has_update is False


def test_failures_report_no_update():
    def boom(request):
        raise httpx.ConnectError("offline", request=request)

    assert check_for_updates("0.4.0", client=_client(boom)).has_update is False
    info = check_for_updates("0.4.0", client=_client(lambda r: httpx.Response(500)))
    assert (info.current_version, info.latest_version, info.has_update) == ("0.4.0", "0.4.0", False)
    assert check_for_updates("0.4.0", client=_client(lambda r: httpx.Response(200, json={}))).has_update is False


def test_install_version_uses_pip():
    calls = []

    def runner(command):
        calls.append(command)
        return subprocess.CompletedProcess(command, 0)

    assert install_version("0.5.0", runner=runner) is True
    assert calls == [[sys.executable, "-m", "pip", "install", "--upgrade", "vincent-scaffold==0.5.0"]]
    assert upgrade_command("1.0.0")[-1] == "vincent-scaffold==1.0.0"
    assert install_version("0.5.0", runner=lambda c: subprocess.CompletedProcess(c, 1)) is False
