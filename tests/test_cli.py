import io
import os
import sys
from pathlib import Path
from typing import IO
from typing import cast as _cast

import pytest
from bytesparse import Memory
from click.core import Command
from click.testing import CliRunner

from hexcrc import __version__ as _version
from hexcrc.__main__ import main as _main
from hexcrc.cli import *

main = _cast(Command, main)  # suppress warnings


@pytest.fixture
def tmppath(tmpdir):
    return Path(str(tmpdir))


@pytest.fixture(scope='module')
def datadir(request):
    dir_path, _ = os.path.splitext(request.module.__file__)
    assert os.path.isdir(str(dir_path))
    return dir_path


@pytest.fixture
def datapath(datadir):
    return Path(str(datadir))


class replace_stdin:

    def __init__(self, stream: IO):
        self.buffer = stream
        self.original = sys.stdin

    def __enter__(self):
        sys.stdin = self
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        sys.stdin = self.original


class TestInputCtxMgr:

    def test___init__(self):
        ctx = InputCtxMgr('in.hex')
        assert ctx.infile == 'in.hex'
        assert ctx.instream is None

    def test___init__dash(self):
        ctx = InputCtxMgr('-')
        assert ctx.infile is None

    def test_bytes(self):
        with InputCtxMgr(b':00000001FF\n') as instream:
            assert instream.read() == b':00000001FF\n'

    def test_memory(self):
        memory = Memory.from_bytes(b':00000001FF\n')
        with InputCtxMgr(memory) as instream:
            assert scan(instream) is None

    def test_memory_offset(self):
        memory = Memory.from_bytes(b':00000001FF\n', offset=0x100)
        with InputCtxMgr(memory) as instream:
            assert scan(instream) is None

    def test_memory_raises_hole(self):
        memory = Memory.from_blocks([[0, b':00'], [10, b'000000\n']])
        with pytest.raises(ValueError, match='non-contiguous memory'):
            with InputCtxMgr(memory):
                pass

    def test_path(self, datapath):
        path = str(datapath / 'valid.hex')
        with InputCtxMgr(path) as instream:
            assert scan(instream) is None
        assert instream.closed

    def test_stdin(self):
        stream = io.BytesIO(b':0000FF\n')
        with replace_stdin(stream):
            with InputCtxMgr(None) as instream:
                assert instream is stream
        assert not stream.closed

    def test_stream(self):
        stream = io.BytesIO(b':00000001FF\n')
        with InputCtxMgr(stream) as instream:
            assert instream is stream
        assert not stream.closed


def test_format_offending():
    assert format_offending(0x41) == 'A'
    assert format_offending(0x141) == 'A'
    assert format_offending(0xFF) == '\xFF'


def test_main():
    try:
        _main('__main__')
    except SystemExit:
        pass


def test_help():
    runner = CliRunner()

    for option in ('-h', '--help'):
        result = runner.invoke(main, [option])
        assert result.exit_code == 0
        assert result.output.strip().startswith('Usage:')


def test_version():
    runner = CliRunner()
    result = runner.invoke(main, ['--version'])
    assert result.exit_code == 0
    assert result.output.strip() == _version


def test_usage_missing_argument():
    runner = CliRunner()
    result = runner.invoke(main, [])
    assert result.exit_code == 1
    assert 'Usage:' in result.output
    assert 'Missing argument' in result.output


def test_usage_extra_argument(datapath):
    path = str(datapath / 'valid.hex')
    runner = CliRunner()
    result = runner.invoke(main, [path, path])
    assert result.exit_code == 1
    assert 'Usage:' in result.output


def test_usage_unknown_option():
    runner = CliRunner()
    result = runner.invoke(main, ['--nope', 'x.hex'])
    assert result.exit_code == 1
    assert 'Usage:' in result.output


def test_missing_file(tmppath):
    path = str(tmppath / 'missing.hex')
    runner = CliRunner()
    result = runner.invoke(main, [path])
    assert result.exit_code == 1
    assert result.output.strip() == f'{path}: No such file or directory'


def test_valid(datapath):
    runner = CliRunner()

    for filename in ('valid.hex', 'crlf.hex'):
        path = str(datapath / filename)
        result = runner.invoke(main, [path])
        assert result.exit_code == 0, filename
        assert result.output == '', filename


def test_wrong_crc(datapath):
    path = str(datapath / 'wrong_crc.hex')
    runner = CliRunner()
    result = runner.invoke(main, [path])
    assert result.exit_code == 1
    assert result.output.splitlines() == [
        'ERROR at line 2:44: Wrong CRC.',
        "INVALID INPUT: '\x01'",
    ]


def test_lowercase(datapath):
    path = str(datapath / 'lowercase.hex')
    runner = CliRunner()
    result = runner.invoke(main, [path])
    assert result.exit_code == 1
    assert result.output.splitlines() == [
        'ERROR at line 2:17: Expected uppercase hex digit.',
        "INVALID INPUT: 'e'",
    ]


def test_empty(datapath):
    path = str(datapath / 'empty.hex')
    runner = CliRunner()
    result = runner.invoke(main, [path])
    assert result.exit_code == 1
    assert result.output.strip() == 'ERROR: empty file.'


def test_no_record(datapath):
    path = str(datapath / 'no_record.txt')
    runner = CliRunner()
    result = runner.invoke(main, [path])
    assert result.exit_code == 1
    assert result.output.strip() == 'ERROR: No record found.'


def test_stdin():
    runner = CliRunner()

    result = runner.invoke(main, ['-'], input=b':00000001FF\n')
    assert result.exit_code == 0
    assert result.output == ''

    result = runner.invoke(main, ['-'], input=b':0000FF\n')
    assert result.exit_code == 1
    assert result.output.splitlines() == [
        'ERROR at line 1:8: Wrong CRC.',
        "INVALID INPUT: '\xFF'",
    ]
