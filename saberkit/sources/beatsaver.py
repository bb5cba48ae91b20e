"""Fetch map archives from BeatSaver by map id."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

import requests
from tqdm import tqdm

BASE_URL = "https://api.beatsaver.com"
CDN_URL = "https://beatsaver.com"
USER_AGENT = "saberkit/0.1.0"
REQUEST_DELAY = 1.0  # seconds between API lookups

logger = logging.getLogger(__name__)


def _latest_version(map_doc: dict) -> dict:
    versions = map_doc.get("versions") or []
    if not versions:
        raise ValueError(f"map {map_doc.get('id', 'unknown')} has no published versions")
    return versions[0]


def _save_archive(content: bytes, target: Path) -> Path:
    """Write an archive next to its final name, then move it into place."""
    partial = target.with_name(target.name + ".part")
    try:
        partial.write_bytes(content)
        partial.replace(target)
    except OSError:
        partial.unlink(missing_ok=True)
        raise
    return target


class BeatSaverClient:
    def __init__(self, base_url: str = BASE_URL):
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()
        self.session.headers["User-Agent"] = USER_AGENT

    def get_map(self, map_id: str) -> dict:
        """Fetch the map document for a BeatSaver id (e.g. ``"1a2b"``)."""
        response = self.session.get(f"{self.base_url}/maps/id/{map_id}")
        response.raise_for_status()
        return response.json()

    def download_archive(self, map_id: str) -> bytes:
        """Download the latest version's zip for a map id."""
        version = _latest_version(self.get_map(map_id))
        return self._fetch(version["downloadURL"])

    def _fetch(self, download_url: str) -> bytes:
        if download_url.startswith("/"):
            download_url = f"{CDN_URL}{download_url}"
        # Runs on worker threads, so no shared session here.
        response = requests.get(download_url, headers={"User-Agent": USER_AGENT})
        response.raise_for_status()
        return response.content

    def _resolve(self, map_id: str, dest_dir: Path) -> tuple[str, Path] | None:
        """Look up a map's download URL and archive path, or None on failure."""
        try:
            version = _latest_version(self.get_map(map_id))
            return version["downloadURL"], dest_dir / f"{version['hash'].upper()}.zip"
        except (requests.RequestException, ValueError, KeyError):
            logger.warning("Failed to look up map %s", map_id, exc_info=True)
            return None

    def _download_to(self, map_id: str, download_url: str, target: Path) -> Path | None:
        try:
            return _save_archive(self._fetch(download_url), target)
        except (requests.RequestException, OSError):
            logger.warning("Failed to download map %s", map_id, exc_info=True)
            return None

    def download_map(self, map_id: str, dest_dir: Path) -> Path | None:
        """Save one map as dest_dir/<hash>.zip, skipping it if already present.

        Returns None (after logging) if the map could not be fetched.
        """
        resolved = self._resolve(map_id, Path(dest_dir))
        if resolved is None:
            return None
        download_url, target = resolved
        if target.exists():
            return target
        return self._download_to(map_id, download_url, target)

    def download_maps(self, map_ids: list[str], dest_dir: Path, workers: int = 8) -> list[Path]:
        """Download several maps, returning the saved archive paths.

        Map documents are looked up one at a time on the shared session,
        ``REQUEST_DELAY`` apart. Only the archive downloads run in parallel.
        Archives are named by content hash so they can be read back with
        ``ZipStorage`` and re-runs skip maps already on disk.
        """
        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)
        downloaded: list[Path] = []
        pending: list[tuple[str, str, Path]] = []

        for i, map_id in enumerate(tqdm(map_ids, desc="Resolving maps")):
            if i > 0:
                time.sleep(REQUEST_DELAY)
            resolved = self._resolve(map_id, dest_dir)
            if resolved is None:
                continue
            download_url, target = resolved
            if target.exists():
                downloaded.append(target)
            else:
                pending.append((map_id, download_url, target))

        with tqdm(total=len(pending), desc="Downloading maps") as pbar:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = [
                    pool.submit(self._download_to, map_id, download_url, target)
                    for map_id, download_url, target in pending
                ]
                for future in as_completed(futures):
                    path = future.result()
                    if path is not None:
                        downloaded.append(path)
                    pbar.update(1)

        logger.info("Download complete: %d of %d maps", len(downloaded), len(map_ids))
        return sorted(downloaded)
