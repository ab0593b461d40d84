"""
On-disk storage for finished synthesis audio.

Artifacts are named from the job id and format only, so repeating a
successful download for the same job overwrites the same file.
"""
import logging
import os
from pathlib import Path
from typing import Optional

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from workbench.config import AUDIO_DIR, FILES_URL_PREFIX
from workbench.exceptions import RetrievalError

logger = logging.getLogger(__name__)


class _FirstPartCollector:
    """MultipartParser callbacks that keep only the first part's body."""

    def __init__(self):
        self.parts_started = 0
        self.first_part_complete = False
        self.data = bytearray()

    def on_part_begin(self):
        self.parts_started += 1

    def on_part_data(self, data: bytes, start: int, end: int):
        if self.parts_started == 1:
            self.data += data[start:end]

    def on_part_end(self):
        if self.parts_started == 1:
            self.first_part_complete = True

    def callbacks(self) -> dict:
        return {
            'on_part_begin': self.on_part_begin,
            'on_part_data': self.on_part_data,
            'on_part_end': self.on_part_end,
        }


def extract_audio_payload(content_type: Optional[str], body: bytes) -> bytes:
    """
    Return the audio bytes of a download response.

    Some downloads arrive as a multi-part body whose first part is the audio;
    anything else is returned unchanged.

    Raises:
        RetrievalError: declared multi-part framing could not be parsed
    """
    if not content_type:
        return body

    media_type, params = parse_options_header(content_type)
    if not media_type.lower().startswith(b'multipart/'):
        return body

    boundary = params.get(b'boundary')
    if not boundary:
        raise RetrievalError('multipart response has no boundary')

    # Skip any preamble before the first delimiter line.
    first_delimiter = body.find(b'--' + boundary)
    if first_delimiter > 0:
        body = body[first_delimiter:]

    collector = _FirstPartCollector()
    parser = MultipartParser(boundary, collector.callbacks())
    try:
        parser.write(body)
        parser.finalize()
    except MultipartParseError as e:
        raise RetrievalError(f'malformed multipart response: {e}') from e

    if not collector.first_part_complete:
        raise RetrievalError('multipart response has no complete part')
    return bytes(collector.data)


class ArtifactStore:
    """Writes audio artifacts and maps them to reference paths."""

    def __init__(self, audio_dir: Path = AUDIO_DIR, url_prefix: str = FILES_URL_PREFIX):
        self.audio_dir = Path(audio_dir)
        self.url_prefix = url_prefix.rstrip('/')

    def path_for(self, job_id: int, format: str) -> Path:
        return self.audio_dir / f'job_{job_id}.{format}'

    def reference_for(self, path: Path) -> str:
        return f'{self.url_prefix}/{path.name}'

    def write(self, job_id: int, format: str, data: bytes) -> str:
        """Write the artifact for a job and return its reference path."""
        path = self.path_for(job_id, format)
        path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = path.with_name(f'{path.name}.part')
        tmp_path.write_bytes(data)
        os.replace(tmp_path, path)

        logger.debug('Wrote %d bytes to %s', len(data), path)
        return self.reference_for(path)

    def resolve(self, reference: Optional[str]) -> Optional[Path]:
        """Map a reference path back to the file on disk."""
        if not reference or not reference.startswith(f'{self.url_prefix}/'):
            return None
        name = Path(reference[len(self.url_prefix) + 1:]).name
        if not name:
            return None
        return self.audio_dir / name

    def remove(self, reference: Optional[str]) -> bool:
        """Delete the artifact behind a reference. Returns True if a file was removed."""
        path = self.resolve(reference)
        if path is None or not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            logger.warning('Could not remove artifact %s: %s', path, e)
            return False
        return True
