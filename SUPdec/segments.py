#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Copyright (C) 2024 cibo
This file is part of SUPdec.

SUPdec is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

SUPdec is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU General Public License for more details.

You should have received a copy of the GNU General Public License
along with SUPdec.  If not, see <http://www.gnu.org/licenses/>.
"""

import os

from enum import Enum, IntEnum
from flags import Flags
from struct import unpack
from typing import Union, Optional, BinaryIO
from dataclasses import dataclass

from .utils import LogFacility
from .palette import Palette
from .errors import (FailedReadBuffer, FailedFillBuf, FailedSeek, SegmentPGMissing,
                     SegmentFailReadHeader, SegmentInvalidTypeCode, SegmentSkip,
                     SegmentBufTooShort, OdsError, LastInSequenceFlagInvalidValue,
                     LastInSequenceFlagNotManaged, ObjectDataLengthMismatch,
                     ObjectSequenceError, PdsError, ReadError)

#%%
logger = LogFacility.get_logger('SUPdec')

FREQ_PGS: int    = 90
MAGIC: bytes     = b"PG"
HEADER_LEN: int  = 13

class PGSOff(Enum):
    MAGIC_HEADER = slice(0, 2)
    PRES_TS      = slice(2, 6)
    DECODE_TS    = slice(6, 10)
    SEG_TYPE     = 10
    SEG_LENGTH   = slice(11,13)

class SegmentTypeCode(IntEnum):
    PDS = 0x14
    ODS = 0x15
    PCS = 0x16
    WDS = 0x17
    END = 0x80

    @classmethod
    def _missing_(cls, value):
        raise SegmentInvalidTypeCode(value)

    def __str__(self) -> str:
        return self.name

#%% Reader helpers
def read_buffer(reader: BinaryIO, size: int) -> bytes:
    """
    Read exactly size bytes from reader.
    :raises FailedReadBuffer: on I/O fault or if the source ends early.
    """
    try:
        data = reader.read(size)
    except OSError as e:
        raise FailedReadBuffer(size) from e
    if len(data) != size:
        raise FailedReadBuffer(size) from EOFError(f"Got {len(data)} of {size} bytes.")
    return data

def skip_data(reader: BinaryIO, size: int) -> None:
    """
    Advance reader by size bytes without keeping them. Consume from the read
    buffer when it already holds the data, seek otherwise.
    """
    peek = getattr(reader, 'peek', None)
    buff = b''
    if peek is not None:
        try:
            buff = peek(size)
        except OSError as e:
            raise FailedFillBuf() from e

    if len(buff) >= size:
        reader.read(size)
    else:
        try:
            reader.seek(size, os.SEEK_CUR)
        except (OSError, OverflowError, ValueError) as e:
            raise FailedSeek(size) from e

#%% Header codec
@dataclass(frozen=True)
class SegmentHeader:
    presentation_timestamp: int
    type_code: SegmentTypeCode
    size: int

    @property
    def presentation_time(self) -> int:
        """
        Presentation timestamp in milliseconds.
        """
        return self.presentation_timestamp // FREQ_PGS

    @classmethod
    def from_bytes(cls, buffer: bytes) -> 'SegmentHeader':
        if buffer[PGSOff.MAGIC_HEADER.value] != MAGIC:
            raise SegmentPGMissing(buffer[PGSOff.MAGIC_HEADER.value])
        if len(buffer) < HEADER_LEN:
            raise SegmentFailReadHeader(len(buffer))
        pts = unpack(">I", buffer[PGSOff.PRES_TS.value])[0]
        type_code = SegmentTypeCode(buffer[PGSOff.SEG_TYPE.value])
        size = unpack(">H", buffer[PGSOff.SEG_LENGTH.value])[0]
        return cls(pts, type_code, size)

    def __str__(self) -> str:
        return f"{self.type_code} at {self.presentation_time}[ms], {self.size} bytes."

def read_header(reader: BinaryIO) -> Optional[SegmentHeader]:
    """
    Read the next segment header.
    :return: the header, or None at a clean end of stream.
    """
    try:
        buffer = reader.read(HEADER_LEN)
    except OSError as e:
        logger.debug(f"Header read failed: {e}")
        raise SegmentFailReadHeader() from e

    if len(buffer) == 0:
        return None
    if len(buffer) < HEADER_LEN and MAGIC.startswith(buffer[PGSOff.MAGIC_HEADER.value]):
        logger.debug("Got too few bytes to decode header.")
        raise SegmentFailReadHeader(len(buffer))
    return SegmentHeader.from_bytes(buffer)

def skip_segment(reader: BinaryIO, header: SegmentHeader) -> None:
    logger.ldebug(f"Skipping {header}")
    try:
        skip_data(reader, header.size)
    except ReadError as e:
        raise SegmentSkip(header.type_code) from e

#%% Object Definition Segment
class ODSFlags(Flags):
    SEQUENCE_FIRST = 0x80
    SEQUENCE_LAST  = 0x40

FIRST_AND_LAST = ODSFlags.SEQUENCE_FIRST | ODSFlags.SEQUENCE_LAST

_SEQUENCE_NAMES = {
    0x40: 'Last',
    0x80: 'First',
    0xC0: 'First and last',
}

def sequence_name(flags: ODSFlags) -> str:
    return f"{_SEQUENCE_NAMES[int(flags)]} in sequence"

def read_sequence_flag(reader: BinaryIO) -> ODSFlags:
    value = _read_field(reader, 1, "LastInSequenceFlag")[0]
    if value not in _SEQUENCE_NAMES:
        raise LastInSequenceFlagInvalidValue(value)
    return ODSFlags(value)

@dataclass
class ObjectDefinitionSegment:
    """
    A complete graphic object: dimensions and RLE compressed bitmap.
    """
    width: int
    height: int
    object_data: bytes

@dataclass
class PartialObject:
    """
    Object whose first segment was read but not its last one yet.
    """
    width: int
    height: int
    data_length: int
    object_data: bytearray

    @property
    def missing(self) -> int:
        return self.data_length - len(self.object_data)

ODS_FIELDS_LEN  = 2 + 1 + 1 + 3 + 2 + 2
ODS_CONT_LEN    = 2 + 1 + 1

def _read_field(reader: BinaryIO, size: int, what: str) -> bytes:
    try:
        return read_buffer(reader, size)
    except ReadError as e:
        raise OdsError(f"Read `{what}` field.") from e

def read_ods(reader: BinaryIO, segment_size: int,
             partial: Optional[PartialObject] = None, /, *,
             multi_segment: bool = True) -> Union[ObjectDefinitionSegment, PartialObject]:
    """
    Read one ODS body. Objects may span numerous segments: the first one
    carries the dimensions and the total data length, the following ones
    only append raw RLE data.

    :param reader:       Source positioned at the start of the segment body.
    :param segment_size: Size declared by the segment header.
    :param partial:      Object left incomplete by a previous call, if any.
    :param multi_segment: If False, only single segment objects are accepted.
    :return: The complete object, or the partial one to feed to the next call.
    """
    try:
        skip_data(reader, 2 + 1)
    except ReadError as e:
        raise OdsError("Skipping `Object ID` and `Object Version Number`.") from e

    flags = read_sequence_flag(reader)

    single = flags == FIRST_AND_LAST
    if ODSFlags.SEQUENCE_FIRST in flags:
        if not single and not multi_segment:
            raise LastInSequenceFlagNotManaged(sequence_name(flags))
        if partial is not None:
            logger.warning(f"Discarding incomplete object ({partial.missing} bytes missing), new object started.")

        data_length = unpack(">I", b'\x00' + _read_field(reader, 3, "Object Data Length"))[0]
        # Object Data Length includes the width and height fields.
        if data_length < 4:
            raise ObjectDataLengthMismatch(4, data_length)
        data_length -= 4
        width = unpack(">H", _read_field(reader, 2, "Width"))[0]
        height = unpack(">H", _read_field(reader, 2, "Height"))[0]

        if single:
            if segment_size != ODS_FIELDS_LEN + data_length:
                raise ObjectDataLengthMismatch(ODS_FIELDS_LEN + data_length, segment_size)
            object_data = _read_field(reader, data_length, "Object Data")
            return ObjectDefinitionSegment(width, height, object_data)

        chunk = segment_size - ODS_FIELDS_LEN
        if not 0 <= chunk <= data_length:
            raise ObjectDataLengthMismatch(data_length, chunk)
        logger.ldebug(f"First ODS of a sequence, {chunk}/{data_length} bytes.")
        return PartialObject(width, height, data_length, bytearray(_read_field(reader, chunk, "Object Data")))

    if not multi_segment:
        raise LastInSequenceFlagNotManaged(sequence_name(flags))
    if partial is None:
        raise ObjectSequenceError("Last in sequence ODS without a first in sequence ODS.")

    chunk = segment_size - ODS_CONT_LEN
    if not 0 <= chunk <= partial.missing:
        raise ObjectDataLengthMismatch(partial.missing, chunk)
    partial.object_data += _read_field(reader, chunk, "Object Data")
    if partial.missing != 0:
        raise ObjectDataLengthMismatch(partial.data_length, len(partial.object_data))
    return ObjectDefinitionSegment(partial.width, partial.height, bytes(partial.object_data))

#%% Palette Definition Segment
@dataclass
class PaletteDefinitionSegment:
    p_id: int
    p_vn: int
    palette: Palette

PDS_STEP = 5

def read_pds(reader: BinaryIO, segment_size: int) -> PaletteDefinitionSegment:
    """
    Read one PDS body: palette id, version then entries of 5 bytes.
    """
    if segment_size < 2 or (segment_size - 2) % PDS_STEP != 0:
        raise PdsError(f"PDS payload of {segment_size} bytes appears to be incorrect.")
    try:
        data = read_buffer(reader, segment_size)
    except ReadError as e:
        raise PdsError("Read palette entries.") from e

    if (segment_size - 2)//PDS_STEP > 256:
        logger.warning("More than 256 PAL entries defined in a PDS.")
    return PaletteDefinitionSegment(data[0], data[1], Palette.from_bytes(data[2:]))

#%% Buffer mode
class SegmentBuf:
    """
    View on one segment of an in-memory buffer: type code (1 byte), size
    (2 bytes) then payload. The view borrows the caller's buffer.
    """
    HEADER_LEN: int = 1 + 2

    def __init__(self, data: Union[bytes, bytearray, memoryview]) -> None:
        view = memoryview(data)
        if len(view) < __class__.HEADER_LEN:
            raise SegmentBufTooShort(__class__.HEADER_LEN, len(view))
        SegmentTypeCode(view[0])
        size = unpack(">H", view[1:3])[0] + __class__.HEADER_LEN
        if len(view) < size:
            raise SegmentBufTooShort(size, len(view))
        self._bytes = view[:size]

    @property
    def code(self) -> SegmentTypeCode:
        return SegmentTypeCode(self._bytes[0])

    @property
    def bytes(self) -> memoryview:
        return self._bytes

    @property
    def data(self) -> memoryview:
        return self._bytes[__class__.HEADER_LEN:]

    def __len__(self) -> int:
        return len(self._bytes)

    def __bytes__(self) -> bytes:
        return self._bytes.tobytes()

    def __str__(self) -> str:
        return f"{self.code}, {len(self.data)} bytes."

class SegmentSplitter:
    """
    Split a buffer of consecutive buffer mode segments. Iterating again
    restarts from the beginning of the buffer.
    """
    def __init__(self, buffer: Union[bytes, bytearray, memoryview]) -> None:
        self._view = memoryview(buffer)

    def __iter__(self):
        offset = 0
        while offset < len(self._view):
            seg = SegmentBuf(self._view[offset:])
            offset += len(seg)
            yield seg
