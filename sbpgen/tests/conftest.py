"""Unit tests configuration file."""

import os

import pytest

from sbpgen.generator import load_files

FILE_DIR = os.path.dirname(os.path.realpath(__file__))


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


@pytest.fixture
def settings_file():
    return os.path.join(FILE_DIR, "generator", "settings.sbp")


@pytest.fixture
def settings_catalog(settings_file):
    return load_files([settings_file])
