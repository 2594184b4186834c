# Copyright (c) 2026, hexcrc developers
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
# 1. Redistributions of source code must retain the above copyright notice,
#    this list of conditions and the following disclaimer.
#
# 2. Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE
# LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR
# CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF
# SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS
# INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN
# CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE)
# ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.

r"""Command line utility.

Kept apart from ``__main__.py`` so that importing it does not run the app
twice when invoked via ``python -m hexcrc``.
"""

import io
import sys
from typing import IO
from typing import Optional
from typing import Union

import click
from bytesparse import MemoryIO
from bytesparse.base import ImmutableMemory

from .__init__ import __version__
from .scanner import ScanError
from .scanner import scan

AnyInput = Optional[Union[str, bytes, bytearray, memoryview, ImmutableMemory, IO]]

USAGE_EXIT_CODE: int = 1
r"""Exit code for command line usage errors."""

FILE_PATH_IN = click.Path(allow_dash=True)


class UsageExitCodeCommand(click.Command):
    r"""Command exiting with :data:`USAGE_EXIT_CODE` on usage errors."""

    def parse_args(self, ctx, args):

        try:
            return super().parse_args(ctx, args)
        except click.UsageError as exc:
            exc.exit_code = USAGE_EXIT_CODE
            raise


def print_version(ctx, _, value):

    if not value or ctx.resilient_parsing:
        return

    click.echo(str(__version__))
    ctx.exit()


def format_offending(offending: int) -> str:
    r"""Formats an offending byte value as a character.

    Args:
        offending (int):
            Byte value; only the low byte is considered.

    Returns:
        str: Latin-1 character.
    """

    return bytes([offending & 0xFF]).decode('latin-1')


def echo_error(error: ScanError) -> None:
    r"""Prints a scan error to the standard error.

    Args:
        error (:class:`ScanError`):
            Error to print.
    """

    click.echo(str(error), err=True)

    if error.offending is not None:
        char = format_offending(error.offending)
        click.echo(f"INVALID INPUT: '{char}'", err=True)


# ----------------------------------------------------------------------------

class InputCtxMgr:
    r"""Input stream binding.

    Within the context, :attr:`instream` is a binary stream reading from
    `infile`:

    * ``None`` or ``'-'``: standard input;
    * :obj:`str`: file path, opened in binary mode and closed on exit;
    * byte string: in-memory stream;
    * :class:`bytesparse.base.ImmutableMemory`: memory stream, from its start
      address; holes raise :obj:`ValueError`;
    * otherwise: `infile` itself, as a binary stream.
    """

    def __init__(self, infile: AnyInput):

        if isinstance(infile, str) and infile == '-':
            infile = None

        self.infile: AnyInput = infile
        self.instream: Optional[Union[IO, MemoryIO]] = None

    def __enter__(self) -> Union[IO, MemoryIO]:

        infile = self.infile

        if infile is None:
            self.instream = sys.stdin.buffer
        elif isinstance(infile, str):
            self.instream = open(infile, 'rb')
        elif isinstance(infile, (bytes, bytearray, memoryview)):
            self.instream = io.BytesIO(infile)
        elif isinstance(infile, ImmutableMemory):
            if not infile.contiguous:
                raise ValueError('non-contiguous memory')
            self.instream = MemoryIO(memory=infile)
            self.instream.seek(infile.start)
        else:
            self.instream = infile

        return self.instream

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:

        if self.instream is not None and isinstance(self.infile, str):
            self.instream.close()


# ============================================================================

@click.command(cls=UsageExitCodeCommand,
               context_settings=dict(help_option_names=['-h', '--help']))
@click.option('--version', is_flag=True, is_eager=True, expose_value=False,
              callback=print_version, help="""
    Prints the package version number.
""")
@click.argument('infile', type=FILE_PATH_IN)
@click.pass_context
def main(
    ctx: click.Context,
    infile: str,
) -> None:
    r"""Checks the record checksums of an Intel HEX file.

    A record starts with ``:`` and is made of pairs of uppercase hexadecimal
    digits, each pair being a byte value.
    The byte values of each record must sum to zero, modulo 256.
    Any characters can stand between records.

    ``INFILE`` is the path of the input file.
    Set to ``-`` to read from standard input.

    Nothing is printed on success.
    The first error is printed to standard error, with exit code 1.
    """

    try:
        with InputCtxMgr(infile) as instream:
            error = scan(instream)
    except OSError as exc:
        click.echo(f'{infile}: {exc.strerror or exc}', err=True)
        ctx.exit(1)
    else:
        if error is not None:
            echo_error(error)
            ctx.exit(1)
