import io
import pytest

from SUPdec.segments import (SegmentTypeCode, SegmentHeader, SegmentBuf, SegmentSplitter,
                             ObjectDefinitionSegment, PartialObject, read_header,
                             skip_segment, skip_data, read_ods, read_pds)
from SUPdec.errors import (SegmentInvalidTypeCode, SegmentPGMissing, SegmentFailReadHeader,
                           SegmentSkip, SegmentBufTooShort, FailedSeek, OdsError,
                           LastInSequenceFlagInvalidValue, LastInSequenceFlagNotManaged,
                           ObjectDataLengthMismatch, ObjectSequenceError, PdsError)

from pgs_builders import (PDS, ODS, END, WHITE, CLEAR, pg_segment, buf_segment,
                          pds_body, ods_body, ods_continuation, RLE_2x4)

@pytest.mark.parametrize("code", [0x14, 0x15, 0x16, 0x17, 0x80])
def test_segment_type_code_valid(code: int):
    assert int(SegmentTypeCode(code)) == code

def test_segment_type_code_str():
    names = [str(SegmentTypeCode(c)) for c in (0x14, 0x15, 0x16, 0x17, 0x80)]
    assert names == ['PDS', 'ODS', 'PCS', 'WDS', 'END']

@pytest.mark.parametrize("code", [0x00, 0x13, 0x18, 0x79, 0x81, 0xFF])
def test_segment_type_code_invalid(code: int):
    with pytest.raises(SegmentInvalidTypeCode) as exc:
        SegmentTypeCode(code)
    assert exc.value.value == code

####

def test_read_header():
    reader = io.BytesIO(pg_segment(END, b'', pts=90*1234, dts=77))
    header = read_header(reader)
    assert header == SegmentHeader(90*1234, SegmentTypeCode.END, 0)
    assert header.presentation_time == 1234
    assert read_header(reader) is None

def test_read_header_empty():
    assert read_header(io.BytesIO(b'')) is None

def test_read_header_magic():
    with pytest.raises(SegmentPGMissing):
        read_header(io.BytesIO(b'XG' + bytes(11)))
    # short reads that cannot be a header are not a truncated header either
    with pytest.raises(SegmentPGMissing):
        read_header(io.BytesIO(b'Q'))

@pytest.mark.parametrize("data", [b'P', b'PG', b'PG\x00\x00\x00'])
def test_read_header_truncated(data: bytes):
    with pytest.raises(SegmentFailReadHeader):
        read_header(io.BytesIO(data))

def test_read_header_io_error():
    class FaultyReader(io.BytesIO):
        def read(self, *args):
            raise OSError("device gone")

    with pytest.raises(SegmentFailReadHeader) as exc:
        read_header(FaultyReader())
    assert isinstance(exc.value.__cause__, OSError)

def test_read_header_invalid_type():
    with pytest.raises(SegmentInvalidTypeCode) as exc:
        read_header(io.BytesIO(pg_segment(0x42)))
    assert exc.value.value == 0x42

def test_skip_segment():
    stream = pg_segment(PDS, bytes(40)) + pg_segment(END, b'', pts=900)
    for reader in (io.BytesIO(stream), io.BufferedReader(io.BytesIO(stream), buffer_size=16)):
        header = read_header(reader)
        skip_segment(reader, header)
        assert read_header(reader).type_code == SegmentTypeCode.END

def test_skip_segment_failure():
    class NoSeek(io.BytesIO):
        def seek(self, *args):
            raise OSError("not seekable")

    reader = NoSeek(pg_segment(ODS, bytes(8)))
    header = read_header(reader)
    with pytest.raises(SegmentSkip) as exc:
        skip_segment(reader, header)
    assert exc.value.type_code == SegmentTypeCode.ODS
    assert isinstance(exc.value.__cause__, FailedSeek)

def test_skip_data_buffered():
    reader = io.BufferedReader(io.BytesIO(bytes(range(32))), buffer_size=64)
    skip_data(reader, 10)
    assert reader.read(1) == bytes([10])

####

def test_read_ods_single():
    body = ods_body(4, 2, RLE_2x4)
    ods = read_ods(io.BytesIO(body), len(body))
    assert ods == ObjectDefinitionSegment(4, 2, RLE_2x4)

def test_read_ods_size_mismatch():
    # declared object data length is one byte larger than the segment
    body = ods_body(4, 2, RLE_2x4, data_len=len(RLE_2x4)+1)
    with pytest.raises(ObjectDataLengthMismatch):
        read_ods(io.BytesIO(body), len(body))

def test_read_ods_multi():
    first = ods_body(4, 2, RLE_2x4[:5], flag=0x80, data_len=len(RLE_2x4))
    last = ods_continuation(RLE_2x4[5:])

    partial = read_ods(io.BytesIO(first), len(first))
    assert isinstance(partial, PartialObject)
    assert (partial.width, partial.height, partial.missing) == (4, 2, len(RLE_2x4) - 5)

    ods = read_ods(io.BytesIO(last), len(last), partial)
    assert ods == ObjectDefinitionSegment(4, 2, RLE_2x4)

def test_read_ods_multi_short():
    first = ods_body(4, 2, RLE_2x4[:5], flag=0x80, data_len=len(RLE_2x4))
    last = ods_continuation(RLE_2x4[5:-1])
    partial = read_ods(io.BytesIO(first), len(first))
    with pytest.raises(ObjectDataLengthMismatch):
        read_ods(io.BytesIO(last), len(last), partial)

def test_read_ods_last_without_first():
    last = ods_continuation(RLE_2x4)
    with pytest.raises(ObjectSequenceError):
        read_ods(io.BytesIO(last), len(last))

@pytest.mark.parametrize("flag", [0x80, 0x40])
def test_read_ods_single_segment_only(flag: int):
    body = ods_body(4, 2, RLE_2x4, flag=flag)
    with pytest.raises(LastInSequenceFlagNotManaged) as exc:
        read_ods(io.BytesIO(body), len(body), multi_segment=False)
    assert isinstance(exc.value, NotImplementedError)
    assert not isinstance(exc.value, ValueError)

@pytest.mark.parametrize("flag", [0x00, 0x01, 0x41, 0xFF])
def test_read_ods_invalid_flag(flag: int):
    body = ods_body(4, 2, RLE_2x4, flag=flag)
    with pytest.raises(LastInSequenceFlagInvalidValue) as exc:
        read_ods(io.BytesIO(body), len(body))
    assert exc.value.value == flag

def test_read_ods_truncated():
    body = ods_body(4, 2, RLE_2x4)
    with pytest.raises(OdsError):
        read_ods(io.BytesIO(body[:-3]), len(body))

####

def test_read_pds():
    body = pds_body({0: CLEAR, 1: WHITE}, p_id=2, p_vn=5)
    pds = read_pds(io.BytesIO(body), len(body))
    assert (pds.p_id, pds.p_vn, len(pds.palette)) == (2, 5, 2)
    assert tuple(pds.palette[1]) == WHITE

def test_read_pds_garbage():
    body = pds_body({1: WHITE}) + b'\x00'
    with pytest.raises(PdsError):
        read_pds(io.BytesIO(body), len(body))

####

def test_segment_buf():
    seg = SegmentBuf(bytes([0x14, 0x00, 0x04, 1, 2, 3, 4]))
    assert seg.code == SegmentTypeCode.PDS
    assert len(seg.data) == 4
    assert bytes(seg.data) == bytes([1, 2, 3, 4])
    assert len(seg.bytes) == 7

    end = SegmentBuf(bytes([0x80, 0x00, 0x00]))
    assert end.code == SegmentTypeCode.END
    assert len(end.data) == 0

def test_segment_buf_invalid():
    with pytest.raises(SegmentBufTooShort):
        SegmentBuf(bytes([0x14, 0x00, 0x05, 1, 2]))
    with pytest.raises(SegmentBufTooShort):
        SegmentBuf(bytes([0x14, 0x00]))
    with pytest.raises(SegmentInvalidTypeCode):
        SegmentBuf(bytes([0x13, 0x00, 0x00]))

def test_segment_splitter():
    buffer = buf_segment(PDS, pds_body({1: WHITE})) + buf_segment(ODS, b'\x00'*3) + buf_segment(END)
    splitter = SegmentSplitter(buffer)
    codes = [seg.code for seg in splitter]
    assert codes == [SegmentTypeCode.PDS, SegmentTypeCode.ODS, SegmentTypeCode.END]
    # restartable
    assert [len(seg) for seg in splitter] == [3+7, 3+3, 3]

def test_segment_splitter_trailing():
    with pytest.raises(SegmentBufTooShort):
        list(SegmentSplitter(buf_segment(END) + b'\x80'))
