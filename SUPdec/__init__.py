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

from .__metadata__ import __name__, __version__

from .errors import (PgsError, ReadError, SegmentPGMissing, SegmentFailReadHeader,
                     SegmentInvalidTypeCode, SegmentSkip, SegmentBufTooShort, OdsError,
                     LastInSequenceFlagInvalidValue, LastInSequenceFlagNotManaged,
                     ObjectDataLengthMismatch, ObjectSequenceError, IncompleteObject,
                     PdsError, MissingDataError, MissingImage, MissingPalette,
                     InvalidAreaBounding, RleDecodeError, PgsIoError, DumpError)
from .utils import Area, AreaValues, Size, TimePoint, TimeSpan, LogFacility
from .palette import Palette, PaletteEntry
from .segments import (SegmentTypeCode, SegmentHeader, SegmentBuf, SegmentSplitter,
                       ObjectDefinitionSegment, PartialObject, ODSFlags, read_header,
                       skip_segment, read_ods, read_pds)
from .pgraphics import (RleEncodedImage, RleToImage, decode_rle, encode_rle,
                        pixel_pass_through, pixel_palette_rgba, dump_images)
from .pgstream import PgsDecoder, DecodeTimeOnly, DecodeTimeImage, SegmentProcessor
from .filestreams import SUPFile
