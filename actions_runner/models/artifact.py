"""
Artifact Model
Pydantic models for run artifacts and the repository secrets public key.
"""
from pydantic import BaseModel, ConfigDict


class Artifact(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: int
    name: str
    size_in_bytes: int = 0


class RepoPublicKey(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    key_id: str
    key: str  # base64 Curve25519 public key
