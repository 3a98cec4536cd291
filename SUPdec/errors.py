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

from typing import Any, Optional, Union
from pathlib import Path

#%%
class PgsError(Exception):
    """
    Base of every error raised while decoding a Presentation Graphic Stream.
    """

#%% Reader faults
class ReadError(PgsError):
    """The underlying byte source failed to deliver or skip data."""

class FailedReadBuffer(ReadError):
    def __init__(self, buffer_size: int) -> None:
        super().__init__(f"Failed read buffer of size : {buffer_size}")
        self.buffer_size = buffer_size

class FailedFillBuf(ReadError):
    def __init__(self) -> None:
        super().__init__("Failed to fill buffer from reader.")

class FailedSeek(ReadError):
    def __init__(self, offset: int) -> None:
        super().__init__(f"Seek of {offset} bytes failed.")
        self.offset = offset

#%% Framing
class SegmentPGMissing(PgsError, ValueError):
    def __init__(self, got: bytes = b'') -> None:
        super().__init__(f"Unable to read segment - PG missing! (got {bytes(got)!r})")

class SegmentFailReadHeader(PgsError, EOFError):
    def __init__(self, got: Optional[int] = None) -> None:
        msg = "Failed to read a complete segment header."
        if got is not None:
            msg += f" Got {got} byte(s)."
        super().__init__(msg)

class SegmentInvalidTypeCode(PgsError, ValueError):
    def __init__(self, value: int) -> None:
        super().__init__(f"Invalid value '{value:#04x}' for Segment Type Code.")
        self.value = value

class SegmentSkip(PgsError):
    def __init__(self, type_code: Any) -> None:
        super().__init__(f"Skipping Segment {type_code}")
        self.type_code = type_code

class SegmentBufTooShort(PgsError, ValueError):
    def __init__(self, expected: int, available: int) -> None:
        super().__init__(f"Segment declares {expected} bytes but only {available} are available.")
        self.expected = expected
        self.available = available

#%% Object Definition Segment
class OdsError(PgsError):
    """Object Definition Segment parsing failed."""

class LastInSequenceFlagInvalidValue(OdsError, ValueError):
    def __init__(self, value: int) -> None:
        super().__init__(f"LastInSequenceFlag : '{value:#04x}' is not a valid value.")
        self.value = value

class LastInSequenceFlagNotManaged(OdsError, NotImplementedError):
    def __init__(self, flag: Any) -> None:
        super().__init__(f"LastInSequenceFlag '{flag}' is not managed.")
        self.flag = flag

class ObjectDataLengthMismatch(OdsError, ValueError):
    def __init__(self, expected: int, got: int) -> None:
        super().__init__(f"ODS length does not match payload: expected {expected}, got {got}.")
        self.expected = expected
        self.got = got

class ObjectSequenceError(OdsError, ValueError):
    """A continuation ODS arrived without its first segment."""

class IncompleteObject(OdsError):
    """A multi-segment object was never terminated by its last segment."""

#%% Palette Definition Segment
class PdsError(PgsError, ValueError):
    """Palette Definition Segment parsing failed."""

#%% Missing parts of a display set
class MissingDataError(PgsError):
    """A display set closed without all the parts required by the decoder."""

class MissingImage(MissingDataError):
    def __init__(self) -> None:
        super().__init__("Missing image during Presentation Graphic Stream (PGS) parsing.")

class MissingPalette(MissingDataError):
    def __init__(self) -> None:
        super().__init__("Missing palette after image parsing.")

#%% Content and bitmaps
class InvalidAreaBounding(PgsError, ValueError):
    def __init__(self, values: Any) -> None:
        super().__init__(f"Invalid bounding box {values}.")
        self.values = values

class RleDecodeError(PgsError, ValueError):
    """The run-length encoded bitmap is malformed."""

#%% Files
class PgsIoError(PgsError):
    def __init__(self, path: Union[str, Path], msg: str = "Io error") -> None:
        super().__init__(f"{msg} on '{path}'.")
        self.path = path

class DumpError(PgsError):
    def __init__(self, path: Union[str, Path]) -> None:
        super().__init__(f"Could not write image '{path}'.")
        self.path = path
