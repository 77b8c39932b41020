"""Pin a bundled Lit Action to IPFS through Pinata."""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Optional

import httpx
from dotenv import load_dotenv

from vincent_scaffold.exceptions import DeployError

from .build import LIT_ACTION_BUNDLE
from .detect import VincentPackage

__all__ = [
    "PINATA_UPLOAD_URL",
    "EXPLORER_URL",
    "pinata_jwt",
    "upload_to_ipfs",
    "lit_action_code",
    "verify_metadata_cid",
    "deploy_package",
    "explorer_link",
]

logger = logging.getLogger(__name__)

PINATA_UPLOAD_URL = "https://api.pinata.cloud/pinning/pinFileToIPFS"
EXPLORER_URL = "https://explorer.litprotocol.com/ipfs/{cid}"


def explorer_link(cid: str) -> str:
    return EXPLORER_URL.format(cid=cid)


def pinata_jwt(explicit: Optional[str] = None) -> str:
    if explicit:
        return explicit
    load_dotenv()
    token = os.environ.get("PINATA_JWT")
    if not token:
        raise DeployError(
            "PINATA_JWT environment variable is not set. Get one from https://app.pinata.cloud "
            "and add it to your .env file."
        )
    return token


def upload_to_ipfs(
    filename: str,
    content: bytes,
    jwt: str,
    *,
    client: Optional[httpx.Client] = None,
) -> str:
    """Upload ``content`` and return the IPFS hash reported by Pinata."""
    owns_client = client is None
    http = client or httpx.Client(timeout=60.0)
    try:
        response = http.post(
            PINATA_UPLOAD_URL,
            headers={"Authorization": f"Bearer {jwt}"},
            files={"file": (filename, content, "application/javascript")},
        )
    except httpx.HTTPError as exc:
        raise DeployError(f"Error uploading to IPFS: {exc}") from exc
    finally:
        if owns_client:
            http.close()

    if response.status_code >= 400:
        raise DeployError(f"HTTP error! status: {response.status_code} - {response.text}")
    try:
        cid = response.json()["IpfsHash"]
    except (ValueError, KeyError) as exc:
        raise DeployError(f"Unexpected Pinata response: {response.text}") from exc
    logger.info("scaffold.deploy.uploaded", extra={"file": filename, "cid": cid})
    return cid


# ``const code = "...";`` as emitted when the bundle is wrapped as a module.
_CODE_EXPORT = re.compile(r'^\s*(?:export\s+)?const\s+code\s*=\s*("(?:[^"\\]|\\.)*")\s*;', re.MULTILINE)


def lit_action_code(bundle_text: str) -> str:
    """Return the Lit Action source held by a bundle.

    A wrapper module exporting ``code`` yields that string; a plain bundle is
    the code itself.
    """
    match = _CODE_EXPORT.search(bundle_text)
    if match is None:
        return bundle_text
    try:
        return json.loads(match.group(1))
    except json.JSONDecodeError as exc:
        raise DeployError(f"Could not decode the code export of the Lit Action bundle: {exc}") from exc


def verify_metadata_cid(metadata_file: Path, cid: str, *, record: bool = False) -> None:
    """Check ``cid`` against the ``ipfsCid`` in ``metadata_file``.

    With ``record`` the file is (re)written with ``cid`` instead.
    """
    metadata_file = Path(metadata_file)
    if record:
        metadata_file.parent.mkdir(parents=True, exist_ok=True)
        metadata_file.write_text(json.dumps({"ipfsCid": cid}, indent=2) + "\n", encoding="utf-8")
        logger.info("scaffold.deploy.metadata_recorded", extra={"path": str(metadata_file), "cid": cid})
        return
    if not metadata_file.is_file():
        raise DeployError(
            f"{metadata_file.name} not found at {metadata_file}. "
            "Run 'vincent-scaffold pkg deploy --record' to record the CID of a first deploy."
        )
    try:
        expected = json.loads(metadata_file.read_text(encoding="utf-8")).get("ipfsCid")
    except (OSError, json.JSONDecodeError, AttributeError) as exc:
        raise DeployError(f"Could not read {metadata_file.name}: {exc}") from exc
    if not expected:
        raise DeployError(f"{metadata_file.name} has no ipfsCid")
    if expected != cid:
        raise DeployError(f"IPFS CID mismatch in {metadata_file.name}. Expected: {expected}, got: {cid}")


def deploy_package(
    package: VincentPackage,
    *,
    jwt: Optional[str] = None,
    client: Optional[httpx.Client] = None,
    record: bool = False,
) -> str:
    token = pinata_jwt(jwt)
    bundle = package.generated_dir / LIT_ACTION_BUNDLE
    if not bundle.is_file():
        raise DeployError(f"Bundled Lit Action code not found at {bundle}. Run 'vincent-scaffold pkg build' first.")

    code = lit_action_code(bundle.read_text(encoding="utf-8"))
    cid = upload_to_ipfs(LIT_ACTION_BUNDLE, code.encode("utf-8"), token, client=client)
    verify_metadata_cid(package.metadata_file, cid, record=record)
    logger.info("scaffold.deploy.completed", extra={"package": package.package_name, "cid": cid})
    return cid
