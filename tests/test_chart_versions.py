import pytest

from daprctl.chart_versions import chart_version


@pytest.mark.parametrize(
    "runtime, chart",
    [("0.7.0", "0.4.0"), ("0.7.1", "0.4.1"), ("0.8.0", "0.4.2"), ("0.9.0", "0.4.3")],
)
def test_known_versions(runtime, chart):
    assert chart_version(runtime) == chart


@pytest.mark.parametrize("runtime", ["1.10.0", "1.0.0-rc.1", ""])
def test_unknown_versions_pass_through(runtime):
    assert chart_version(runtime) == runtime