"""
Shared pytest fixtures and configuration for WebSpeech client tests
"""
import sys
import os
import tempfile
from pathlib import Path

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from tests.fakes import FakeTransport, FakeRecorder


@pytest.fixture
def transport():
    """Scripted transport; every endpoint answers code 0 unless told otherwise"""
    return FakeTransport()


@pytest.fixture
def recorder():
    return FakeRecorder()


@pytest.fixture
def wav_file():
    """A small file with a .wav extension"""
    fd, path = tempfile.mkstemp(suffix='.wav')
    with os.fdopen(fd, 'wb') as f:
        f.write(b'RIFF' + b'\x00' * 60)
    yield path
    if os.path.exists(path):
        os.unlink(path)
