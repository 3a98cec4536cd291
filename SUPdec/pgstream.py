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

from io import BytesIO
from typing import Any, BinaryIO, Generator, Optional, Union

from .segments import (SegmentTypeCode, SegmentHeader, SegmentBuf, SegmentSplitter,
                       ObjectDefinitionSegment, PartialObject, read_header,
                       skip_segment, read_ods, read_pds)
from .pgraphics import RleEncodedImage
from .palette import Palette
from .utils import LogFacility, TimePoint, TimeSpan
from .errors import MissingImage, MissingPalette, IncompleteObject

logger = LogFacility.get_logger('SUPdec')

#%%
class PgsDecoder:
    """
    Display set state machine. Each call to parse_next() reads segments
    until the second End segment closes a subtitle: the first End gives
    the start time, the second one the end time.
    Subclasses choose which segments they act on and what they return.
    """
    def __init__(self, **kwargs) -> None:
        self.multi_segment = bool(kwargs.pop('multi_segment_objects', True))

    def parse_next(self, reader: BinaryIO) -> Optional[Any]:
        """
        Decode the next subtitle from reader.

        :param reader: buffered and seekable binary source.
        :return: the decoded entry, or None once the stream is exhausted.
        """
        start_time = None
        subtitle = None
        self._begin()

        while subtitle is None and (header := read_header(reader)) is not None:
            if header.type_code == SegmentTypeCode.END:
                time = TimePoint.from_msecs(header.presentation_time)
                if start_time is None:
                    start_time = time
                else:
                    subtitle = self._close(TimeSpan(start_time, time))
            else:
                self._process(reader, header)

        if subtitle is None and start_time is not None:
            logger.debug(f"Stream ended with a pending subtitle starting at {start_time}.")
        self._end()
        return subtitle

    def iter_entries(self, reader: BinaryIO) -> Generator[Any, None, None]:
        while (entry := self.parse_next(reader)) is not None:
            yield entry

    def _begin(self) -> None:
        ...

    def _process(self, reader: BinaryIO, header: SegmentHeader) -> None:
        skip_segment(reader, header)

    def _close(self, times: TimeSpan) -> Any:
        raise NotImplementedError

    def _end(self) -> None:
        ...
####

class DecodeTimeOnly(PgsDecoder):
    """
    Provide only the times of the subtitles, every segment body is skipped.
    """
    def _close(self, times: TimeSpan) -> TimeSpan:
        return times
####

class DecodeTimeImage(PgsDecoder):
    """
    Provide the times and the RLE image of the subtitles.
    """
    def _begin(self) -> None:
        self._palette: Optional[Palette] = None
        self._image: Optional[RleEncodedImage] = None
        self._partial: Optional[PartialObject] = None

    def _process(self, reader: BinaryIO, header: SegmentHeader) -> None:
        if header.type_code == SegmentTypeCode.PDS:
            logger.ldebug(f"Reading {header}")
            self._palette = read_pds(reader, header.size).palette
        elif header.type_code == SegmentTypeCode.ODS:
            logger.ldebug(f"Reading {header}")
            ods = read_ods(reader, header.size, self._partial, multi_segment=self.multi_segment)
            if isinstance(ods, ObjectDefinitionSegment):
                self._partial = None
                if self._palette is None:
                    raise MissingPalette()
                self._image = RleEncodedImage(ods.width, ods.height, self._palette, ods.object_data)
                self._palette = None
            else:
                self._partial = ods
        else:
            super()._process(reader, header)

    def _close(self, times: TimeSpan) -> tuple[TimeSpan, RleEncodedImage]:
        if self._partial is not None:
            raise IncompleteObject(f"Object misses {self._partial.missing} bytes at {times.end}.")
        if self._image is None:
            raise MissingImage()
        return (times, self._image)

    def _end(self) -> None:
        if self._palette is not None:
            logger.warning("Dropping a palette that no object used.")
        if self._partial is not None:
            logger.warning(f"Dropping an incomplete object ({self._partial.missing} bytes missing).")
        self._begin()
####

#%%
class SegmentProcessor:
    """
    Gather the image of one display set from buffer mode segments.
    """
    def __init__(self, **kwargs) -> None:
        self.multi_segment = bool(kwargs.pop('multi_segment_objects', True))
        self.complete = False
        self._palette: Optional[Palette] = None
        self._object: Optional[ObjectDefinitionSegment] = None
        self._partial: Optional[PartialObject] = None

    def process_segment(self, seg: SegmentBuf) -> None:
        code = seg.code
        if code == SegmentTypeCode.PDS:
            self._palette = read_pds(BytesIO(seg.data), len(seg.data)).palette
        elif code == SegmentTypeCode.ODS:
            ods = read_ods(BytesIO(seg.data), len(seg.data), self._partial, multi_segment=self.multi_segment)
            if isinstance(ods, ObjectDefinitionSegment):
                self._object, self._partial = ods, None
            else:
                self._partial = ods
        elif code == SegmentTypeCode.END:
            self.complete = True
        else:
            logger.ldebug(f"Ignoring {seg}")

    def into_image(self) -> RleEncodedImage:
        if self._partial is not None:
            raise IncompleteObject(f"Object misses {self._partial.missing} bytes.")
        if self._object is None:
            raise MissingImage()
        if self._palette is None:
            raise MissingPalette()
        return RleEncodedImage(self._object.width, self._object.height, self._palette, self._object.object_data)

    @classmethod
    def image_from_buffer(cls, buffer: Union[bytes, bytearray, memoryview], **kwargs) -> RleEncodedImage:
        proc = cls(**kwargs)
        for seg in SegmentSplitter(buffer):
            proc.process_segment(seg)
        return proc.into_image()
####
