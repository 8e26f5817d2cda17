import hashlib
import logging
import time
import requests
from tqdm import tqdm
from pathlib import Path

from .errors import IndexReadError
from .index import decompress_index
from .models import RepoFile, COPIED, IGNORED, NOT_FOUND, FAILED
from .config import MAX_RETRIES, RETRY_DELAY, CHUNK_SIZE, CONNECT_TIMEOUT, READ_TIMEOUT

logger = logging.getLogger(__name__)

class NotFound(Exception):
    """The server answered 404."""


def fetch_url(url: str, session: requests.Session, stream: bool = False, timeout: tuple = (CONNECT_TIMEOUT, READ_TIMEOUT)):
    """
    Fetches a URL with retries and exponential backoff.
    Returns the response, or None after MAX_RETRIES failures.
    Raises NotFound on 404, which is never retried.
    """
    for attempt in range(MAX_RETRIES):
        try:
            response = session.get(url, stream=stream, timeout=timeout, allow_redirects=True)
            response.raise_for_status()
            logger.debug(f"Fetched (status {response.status_code}): {url}")
            return response
        except requests.exceptions.HTTPError as e:
            if e.response is not None and e.response.status_code == 404:
                logger.debug(f"File not found (404): {url}")
                raise NotFound(url) from e
            status = e.response.status_code if e.response is not None else "?"
            logger.warning(f"HTTP Error {status} on attempt {attempt + 1}/{MAX_RETRIES} for {url}: {e}")
        except requests.exceptions.RequestException as e:
            logger.warning(f"Network/Request Error on attempt {attempt + 1}/{MAX_RETRIES} for {url}: {e}")

        if attempt + 1 == MAX_RETRIES:
            logger.error(f"Failed to fetch {url} after {MAX_RETRIES} attempts.")
            return None
        delay = RETRY_DELAY * (2 ** attempt)
        logger.debug(f"Retrying {url} in {delay} seconds...")
        time.sleep(delay)
    return None


def fetch_index(url: str, session: requests.Session) -> bytes:
    """Fetches and decompresses a remote Packages.gz/Sources.gz."""
    try:
        response = fetch_url(url, session)
    except NotFound as e:
        raise IndexReadError(f"Index not found on mirror: {url}") from e
    if response is None:
        raise IndexReadError(f"Failed to fetch index: {url}")
    return decompress_index(response.content, url)


def calculate_sha256(file_path: Path) -> str | None:
    """Calculates the SHA256 hash of a file, or None if it cannot be read."""
    hasher = hashlib.sha256()
    try:
        with open(file_path, 'rb') as f:
            while True:
                chunk = f.read(CHUNK_SIZE)
                if not chunk:
                    break
                hasher.update(chunk)
        return hasher.hexdigest()
    except OSError as e:
        logger.error(f"Cannot calculate SHA256 for {file_path}: {e}")
        return None


def download_file(repo_file: RepoFile, session: requests.Session, pbar: tqdm = None) -> tuple[str, int]:
    """
    Downloads repo_file.url to repo_file.local_path unless it is already there.
    The data goes to a '.partial' file that is renamed only after the size and
    SHA256 (when known) check out.
    Returns (status, bytes) where status is COPIED, IGNORED, NOT_FOUND or FAILED.
    """
    if repo_file.local_path.exists():
        existing_size = repo_file.local_path.stat().st_size
        if repo_file.expected_size <= 0 or existing_size == repo_file.expected_size:
            logger.debug(f"File already exists: {repo_file.local_path}")
            if pbar: pbar.update(existing_size)
            return IGNORED, existing_size
        logger.info(f"File exists but size mismatch ({existing_size} vs {repo_file.expected_size}). Re-downloading: {repo_file.local_path}")

    repo_file.local_path.parent.mkdir(parents=True, exist_ok=True)
    downloaded_size = 0
    tmp_path = repo_file.local_path.with_suffix(repo_file.local_path.suffix + ".partial")

    try:
        try:
            response = fetch_url(repo_file.url, session, stream=True)
        except NotFound:
            logger.warning(f"{repo_file.url} not found.")
            return NOT_FOUND, 0
        if not response:
            return FAILED, 0

        with open(tmp_path, 'wb') as f:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                f.write(chunk)
                downloaded_size += len(chunk)
                if pbar:
                    pbar.update(len(chunk))

        if repo_file.expected_size > 0 and downloaded_size != repo_file.expected_size:
            logger.error(f"Downloaded size ({downloaded_size}) differs from index size ({repo_file.expected_size}) for {repo_file.local_path}. Deleting.")
            return FAILED, downloaded_size

        if repo_file.expected_sha256:
            actual_hash = calculate_sha256(tmp_path)
            if actual_hash != repo_file.expected_sha256:
                logger.error(f"SHA256 mismatch for {repo_file.local_path}! Expected {repo_file.expected_sha256}, got {actual_hash}. Deleting.")
                return FAILED, downloaded_size
            logger.debug(f"SHA256 verified for {repo_file.local_path}")

        tmp_path.rename(repo_file.local_path)
        logger.debug(f"Downloaded and verified {repo_file.local_path}")
        return COPIED, downloaded_size

    except (requests.exceptions.RequestException, OSError) as e:
        logger.error(f"Error during download of {repo_file.url} -> {repo_file.local_path}: {e}")
        return FAILED, downloaded_size
    finally:
        if tmp_path.exists():
            try:
                tmp_path.unlink()
                logger.debug(f"Deleted temporary file: {tmp_path}")
            except OSError as unlink_err:
                logger.error(f"Error deleting temporary file {tmp_path}: {unlink_err}")
