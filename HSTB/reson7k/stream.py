"""
Byte stream framing, cuts an arbitrarily chunked 7k byte stream into validated records.

A record starts 4 bytes ahead of the \\xff\\xff\\x00\\x00 sync pattern (protocol version and offset come first).
Bytes that do not frame a valid record are skipped one at a time until the next plausible sync pattern, so a
corrupt record costs only itself.
"""

import logging

import numpy as np

from HSTB.reson7k import s7k
from HSTB.reson7k.config import MAX_RECORD_SIZE

logger = logging.getLogger(__name__)

SYNC_OFFSET = 4
MIN_RECORD_SIZE = s7k.Datagram.hdr_sz + s7k.CHECKSUM_SIZE
# protocol versions seen in the wild, anything else in front of a sync pattern is taken as a false sync
KNOWN_PROTOCOL_VERSIONS = (2, 3, 4, 5)


class StreamStats:
    """Counters of a S7kStream"""

    def __init__(self):
        self.records = 0
        self.bytes_skipped = 0
        self.resyncs = 0
        self.framing_errors = 0
        self.unknown_kinds = 0

    def __repr__(self):
        return f'StreamStats(records={self.records}, bytes_skipped={self.bytes_skipped}, resyncs={self.resyncs}, framing_errors={self.framing_errors}, unknown_kinds={self.unknown_kinds})'


class S7kStream:
    """
    Incremental framer.  feed() takes whatever bytes are at hand and returns the Datagrams completed by them, partial
    records wait in the buffer for the next feed.

    Datagrams come back framed and validated but not decoded, Datagram.decode() gives the payload.
    """

    def __init__(self, max_record_size=MAX_RECORD_SIZE):
        self.max_record_size = max_record_size
        self.buffer = bytearray()
        self.position = 0  # stream offset of buffer[0]
        self.stats = StreamStats()
        self.at_right_byte = False

    def feed(self, data):
        self.buffer.extend(data)
        datagrams = []
        while True:
            if not self.seek_next_startbyte():
                break
            if len(self.buffer) < MIN_RECORD_SIZE:
                break
            # validate the header before waiting on its declared size
            header = np.frombuffer(bytes(self.buffer[:s7k.Datagram.hdr_sz]), dtype=s7k.Datagram.hdr_dtype, count=1)[0]
            try:
                s7k.check_header(header)
            except s7k.FramingError as e:
                self._reject(str(e))
                continue
            size = int(header['Size'])
            if size > self.max_record_size:
                self._reject(f'declared size {size} out of bounds')
                continue
            if len(self.buffer) < size:
                break
            try:
                datagram = s7k.Datagram(bytes(self.buffer[:size]), self.position)
            except s7k.FramingError as e:
                self._reject(str(e))
                continue
            self._consume(size)
            self.at_right_byte = False
            self.stats.records += 1
            if datagram.kind is None:
                self.stats.unknown_kinds += 1
                logger.debug(f'unknown record type {datagram.dtype} at stream offset {datagram.datagram_start}, skipped')
            datagrams.append(datagram)
        return datagrams

    def seek_next_startbyte(self):
        """
        Drop bytes until the buffer starts with a plausible record start.  Returns False when more data is needed to
        find one, the last bytes that could still begin a sync pattern are kept.
        """
        if self.at_right_byte:
            return True
        search_from = SYNC_OFFSET
        while True:
            stx_idx = self.buffer.find(s7k.SYNC_BYTES, search_from)
            if stx_idx < 0:
                # keep the tail that could hold the start of a split sync pattern
                keep = SYNC_OFFSET + len(s7k.SYNC_BYTES) - 1
                if len(self.buffer) > keep:
                    self._skip(len(self.buffer) - keep)
                return False
            version = int.from_bytes(self.buffer[stx_idx - SYNC_OFFSET:stx_idx - SYNC_OFFSET + 2], 'little')
            if version in KNOWN_PROTOCOL_VERSIONS:
                self._skip(stx_idx - SYNC_OFFSET)
                self.at_right_byte = True
                return True
            search_from = stx_idx + 1

    def flush(self):
        """
        End of stream.  A record start still waiting on its declared size can no longer complete, it is taken as a
        false sync and scanning resumes after it.  Returns the Datagrams found behind such starts, whatever can not be
        framed is discarded.
        """
        datagrams = []
        while self.buffer:
            datagrams.extend(self.feed(b''))
            if not self.at_right_byte:
                break
            self._reject('record truncated by the end of the stream')
        dropped = len(self.buffer)
        if dropped:
            logger.info(f'{dropped} bytes of incomplete record discarded at stream offset {self.position}')
            self._skip(dropped)
        self.at_right_byte = False
        return datagrams

    def _reject(self, reason):
        logger.warning(f'framing error at stream offset {self.position}: {reason}, resyncing')
        self.stats.framing_errors += 1
        self.stats.resyncs += 1
        self.at_right_byte = False
        self._skip(1)

    def _skip(self, count):
        if count <= 0:
            return
        self.stats.bytes_skipped += count
        self._consume(count)

    def _consume(self, count):
        del self.buffer[:count]
        self.position += count
