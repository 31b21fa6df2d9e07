"""
Content addressing for skills.

A skill's hash is a digest of its canonical plaintext, computed before
encryption, so identical content always maps to the same version identifier
no matter how many times it is encrypted.
"""

import hashlib
import json

from skillsync.models.skill import Skill

SHORT_HASH_LENGTH = 8


def canonicalize(skill: Skill) -> str:
    """
    Serialize the hashed fields of a skill deterministically.

    Field order is fixed and supporting files are sorted by name, so two
    skills that differ only in how their file list was built serialize
    identically. Path, timestamps and parsed metadata are not part of the
    identity (metadata is already inside ``content``).
    """
    canonical = {
        "name": skill.name,
        "type": skill.type.value,
        "content": skill.content,
        "files": [
            {"name": f.name, "content": f.content}
            for f in sorted(skill.files, key=lambda f: f.name)
        ],
    }
    return json.dumps(canonical, ensure_ascii=False, separators=(",", ":"))


def full_hash(skill: Skill) -> str:
    """SHA-256 of the canonical form, 64 hex characters."""
    return hashlib.sha256(canonicalize(skill).encode("utf-8")).hexdigest()


def content_hash(skill: Skill) -> str:
    """
    Short hash used as the version identifier (first 8 hex characters).

    Only 32 bits: fine for per-skill version ids, use :func:`full_hash` where
    collision resistance matters.
    """
    return full_hash(skill)[:SHORT_HASH_LENGTH]
