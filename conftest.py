import matplotlib
import pytest

matplotlib.use('Agg')

optional_markers = {
    "devtest": {
        "help": "run all tests including the slow checks on random diagrams.",
        "description": "test is a slow check on large random diagrams.",
        "skip-reason": "only ran on request, use --{marker} to run."
    }
}


def pytest_addoption(parser):
    for marker, info in optional_markers.items():
        parser.addoption(f"--{marker}", action="store_true", default=False,
                         help=info['help'])


def pytest_configure(config):
    for marker, info in optional_markers.items():
        config.addinivalue_line("markers", f"{marker}: {info['description']}")


def pytest_collection_modifyitems(config, items):
    for marker, info in optional_markers.items():
        if config.getoption(f"--{marker}"):
            continue
        skip_marked = pytest.mark.skip(
            reason=info['skip-reason'].format(marker=marker)
        )
        for item in items:
            if marker in item.keywords:
                item.add_marker(skip_marked)
