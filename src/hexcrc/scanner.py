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

r"""Intel HEX record checksum scanner.

A record file is a sequence of records written in ASCII characters.
A record starts with ``:`` and is made of pairs of uppercase hexadecimal
digits, each pair encoding a byte value.
The byte values of a record must sum to zero, modulo 256, because the last
byte of the record is the two's complement checksum of all the others.
Any characters can sit between records.

See Also:
    `<https://en.wikipedia.org/wiki/Intel_HEX>`_
"""

import enum
from typing import IO
from typing import Iterable
from typing import Iterator
from typing import Optional
from typing import Type
from typing import Union

COLON: int = 0x3A
r"""Record begin marker."""

NEWLINE: int = 0x0A
r"""Line separator."""

DEFAULT_CHUNK_SIZE: int = 4096
r"""Default number of bytes read from a stream at once."""

HEX_DIGITS: bytes = b'0123456789ABCDEF'
r"""Accepted hexadecimal digits, uppercase only."""

ALNUM_CHARS: bytes = (b'0123456789'
                      b'ABCDEFGHIJKLMNOPQRSTUVWXYZ'
                      b'abcdefghijklmnopqrstuvwxyz')
r"""ASCII alphanumeric characters."""

AnyStream = Union[IO, Iterable[bytes]]


class ScanError(ValueError):
    r"""Record file scanning error.

    Attributes:
        message (str):
            Human readable error message.

        line (int):
            Line number, starting from 1.

        column (int):
            Column number, starting from 1.

        offending (int):
            Offending byte value, or ``None`` if not related to a byte.
    """

    MESSAGE: str = ''

    def __init__(
        self,
        line: int,
        column: int,
        offending: Optional[int] = None,
    ):

        super().__init__(self.MESSAGE)
        self.message: str = self.MESSAGE
        self.line: int = line
        self.column: int = column
        self.offending: Optional[int] = offending

    def __str__(self) -> str:

        if self.offending is None:
            return f'ERROR: {self.message}'
        else:
            return f'ERROR at line {self.line}:{self.column}: {self.message}'


class LexicalError(ScanError):
    r"""Not an uppercase hexadecimal digit where one is expected."""

    MESSAGE = 'Expected uppercase hex digit.'


class ChecksumError(ScanError):
    r"""Record byte values do not sum to zero.

    The :attr:`offending` value is the low byte of the record sum.
    """

    MESSAGE = 'Wrong CRC.'


class EmptyInputError(ScanError):
    r"""No bytes at all."""

    MESSAGE = 'empty file.'


class NoRecordError(ScanError):
    r"""No record begin marker found."""

    MESSAGE = 'No record found.'


class ScanState(enum.IntEnum):
    r"""Record scanner automaton state."""

    COMMENT = 0
    r"""Outside of any record."""

    RECORD_START = 1
    r"""Record begin marker consumed; expecting the first high nibble."""

    NIBBLE_HIGH = 2
    r"""High nibble consumed; expecting the low nibble."""

    NIBBLE_LOW = 3
    r"""Whole byte consumed; expecting a high nibble or a record end."""


def is_valid_digit(b: int) -> bool:
    r"""Tells whether a byte is an uppercase hexadecimal digit.

    Lowercase digits are rejected on purpose.

    Args:
        b (int):
            Byte value.

    Returns:
        bool: `b` is one of ``0123456789ABCDEF``.

    Examples:
        >>> is_valid_digit(ord('A'))
        True
        >>> is_valid_digit(ord('a'))
        False
    """

    return b in HEX_DIGITS


def digit_value(b: int) -> int:
    r"""Converts an uppercase hexadecimal digit into its value.

    Args:
        b (int):
            Byte value of a valid digit, as per :func:`is_valid_digit`.

    Returns:
        int: Digit value, within ``range(16)``.

    Examples:
        >>> digit_value(ord('7'))
        7
        >>> digit_value(ord('C'))
        12
    """

    value = HEX_DIGITS.find(b)
    assert value >= 0, f'invalid digit: {b!r}'
    return value


class RecordScanner:
    r"""Record checksum scanner.

    Finite state automaton consuming one byte at a time.
    It stops at the first error, which is raised by :meth:`feed` or
    :meth:`finish`, and raised again by any further call.

    Examples:
        >>> scanner = RecordScanner()
        >>> scanner.feed_chunk(b':00000001FF\n')
        >>> scanner.finish()
        >>> scanner.record_count
        1
    """

    def __init__(self):

        self.line: int = 1
        self.column: int = 1
        self.state: ScanState = ScanState.COMMENT
        self.pending: int = 0
        self.checksum: int = 0
        self.record_count: int = 0
        self.byte_count: int = 0
        self.error: Optional[ScanError] = None

    def _fail(self, error_type: Type[ScanError], offending: Optional[int]) -> None:

        self.error = error_type(self.line, self.column, offending)
        raise self.error

    def _open_record(self) -> None:

        self.record_count += 1
        self.state = ScanState.RECORD_START

    def feed(self, b: int) -> None:
        r"""Consumes a byte.

        Args:
            b (int):
                Byte value.

        Raises:
            LexicalError: Not an uppercase hex digit where one is expected.
            ChecksumError: The record just terminated by `b` does not sum to
                zero.
        """

        if self.error is not None:
            raise self.error

        state = self.state

        if state == ScanState.COMMENT:
            if b == COLON:
                self._open_record()

        elif state == ScanState.RECORD_START:
            if not is_valid_digit(b):
                self._fail(LexicalError, b)
            self.checksum = 0
            self.pending = digit_value(b) << 4
            self.state = ScanState.NIBBLE_HIGH

        elif state == ScanState.NIBBLE_HIGH:
            if not is_valid_digit(b):
                self._fail(LexicalError, b)
            self.pending |= digit_value(b)
            self.state = ScanState.NIBBLE_LOW

        elif state == ScanState.NIBBLE_LOW:
            if is_valid_digit(b):
                self.checksum += self.pending
                self.pending = digit_value(b) << 4
                self.state = ScanState.NIBBLE_HIGH

            elif b in ALNUM_CHARS:
                self._fail(LexicalError, b)

            else:
                self.checksum += self.pending
                crc = self.checksum & 0xFF
                if crc:
                    self._fail(ChecksumError, crc)
                self.state = ScanState.COMMENT

                # adjacent records
                if b == COLON:
                    self._open_record()

        else:
            raise AssertionError(f'unknown scanner state: {state!r}')

        self.byte_count += 1
        if b == NEWLINE:
            self.line += 1
            self.column = 1
        else:
            self.column += 1

    def feed_chunk(self, chunk: bytes) -> None:
        r"""Consumes a chunk of bytes.

        Args:
            chunk (bytes):
                Byte string.

        Raises:
            ScanError: First error found.
        """

        feed = self.feed
        for b in chunk:
            feed(b)

    def finish(self) -> None:
        r"""Checks the end of the stream.

        A record left incomplete at the end of the stream is not checked.

        Raises:
            EmptyInputError: No bytes were consumed.
            NoRecordError: No records were found.
        """

        if self.error is not None:
            raise self.error

        if not self.byte_count:
            self._fail(EmptyInputError, None)

        if not self.record_count:
            self._fail(NoRecordError, None)


def iter_chunks(
    stream: AnyStream,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Iterator[bytes]:
    r"""Iterates over the chunks of a stream.

    Args:
        stream (IO or iterable):
            Either a binary stream with a ``read()`` method, or an iterable of
            byte strings.

        chunk_size (int):
            Maximum number of bytes per ``read()`` call.

    Yields:
        bytes: Chunk of the stream.
    """

    chunk_size = int(chunk_size)
    if chunk_size <= 0:
        raise ValueError('non-positive chunk size')

    read = getattr(stream, 'read', None)
    if read is None:
        yield from stream
    else:
        while True:
            chunk = read(chunk_size)
            if not chunk:
                break
            yield chunk


def validate(
    stream: AnyStream,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> None:
    r"""Validates the record checksums of a stream.

    The stream is consumed up to the first error, or till its end.
    It is never closed.

    Args:
        stream (IO or iterable):
            Either a binary stream with a ``read()`` method, or an iterable of
            byte strings.

        chunk_size (int):
            Maximum number of bytes per ``read()`` call.

    Raises:
        ScanError: First error found.

    Examples:
        >>> import io
        >>> validate(io.BytesIO(b':00000001FF\n'))
        >>> validate(io.BytesIO(b':0000FF\n'))
        Traceback (most recent call last):
            ...
        hexcrc.scanner.ChecksumError: ERROR at line 1:8: Wrong CRC.
    """

    scanner = RecordScanner()
    for chunk in iter_chunks(stream, chunk_size):
        scanner.feed_chunk(chunk)
    scanner.finish()


def scan(
    stream: AnyStream,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Optional[ScanError]:
    r"""Scans the record checksums of a stream.

    Same as :func:`validate`, but returning the error instead of raising it.

    Args:
        stream (IO or iterable):
            Either a binary stream with a ``read()`` method, or an iterable of
            byte strings.

        chunk_size (int):
            Maximum number of bytes per ``read()`` call.

    Returns:
        :class:`ScanError`: First error found, ``None`` if valid.

    Examples:
        >>> scan([b'hello', b':00000000\n']) is None
        True
        >>> scan([b'no records'])
        NoRecordError('No record found.')
    """

    try:
        validate(stream, chunk_size)
    except ScanError as error:
        return error
    return None
