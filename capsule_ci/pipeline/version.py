from __future__ import annotations

import re

from capsule_ci.core.config import DEFAULT_VERSION_REGEX
from capsule_ci.core.result import Err, Ok, Result
from capsule_ci.pipeline.errors import InvalidInput
from capsule_ci.pipeline.model import TAG_PREFIX


def tag_name_from_ref(ref: str) -> str:
    """`refs/tags/v1.2.3` -> `v1.2.3`; a bare tag name is returned unchanged."""
    return ref.strip().removeprefix(TAG_PREFIX)


def derive_version_tag(ref: str, regex: str = DEFAULT_VERSION_REGEX) -> Result[str, InvalidInput]:
    """Extract the version tag: capture group 1 of `regex` on the tag name.

    `refs/tags/v1.2.3` -> `1.2.3` with the default regex.
    """
    tag = tag_name_from_ref(ref)
    if not tag:
        return Err(InvalidInput(message="empty tag reference"))

    m = re.search(regex, tag)
    if m is None:
        return Err(
            InvalidInput(
                message=f"tag {tag!r} does not match {regex}",
                hint="Release tags look like v1.2.3",
            )
        )

    if m.re.groups < 1:
        return Err(InvalidInput(message=f"version regex has no capture group: {regex}"))

    version = m.group(1)
    if not version:
        return Err(InvalidInput(message=f"tag {tag!r} yields an empty version"))
    # The version becomes part of archive file names.
    if "/" in version or "\\" in version:
        return Err(
            InvalidInput(
                message=f"version {version!r} from tag {tag!r} contains a path separator",
                hint="Release tags look like v1.2.3",
            )
        )
    return Ok(version)
