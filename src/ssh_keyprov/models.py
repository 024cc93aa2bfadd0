"""Key material and session descriptions."""

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class KeyMaterial(BaseModel):
    """Known key artifacts for one provisioning session, local and remote.

    A local or remote public key is always set together with the path it was
    read from. ``remote_authorized_keys`` is None when the remote file does
    not exist.
    """

    model_config = ConfigDict(validate_assignment=True)

    local_public_key: str | None = None
    local_public_key_path: str | None = None
    remote_public_key: str | None = None
    remote_public_key_path: str | None = None
    remote_authorized_keys: str | None = None

    @property
    def has_local_key(self) -> bool:
        return self.local_public_key is not None

    @property
    def has_remote_key(self) -> bool:
        return self.remote_public_key is not None

    def set_local(self, key: str | None, path: str | None) -> None:
        self.local_public_key = key
        self.local_public_key_path = path if key is not None else None

    def set_remote(self, key: str, path: str) -> None:
        self.remote_public_key = key
        self.remote_public_key_path = path


class SessionInfo(BaseModel):
    """Connection parameters for the remote host. Consumed read-only."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(..., min_length=1)
    port: int = Field(default=22, ge=1, le=65535)
    user: str = Field(..., min_length=1)
    password: SecretStr | None = None
    private_key_file: str | None = Field(
        default=None,
        description="Identity used to authenticate; its '.pub' sibling is the preferred local key",
    )
    private_key_passphrase: SecretStr | None = None
    connect_timeout: float = Field(default=15.0, gt=0)

    @property
    def user_host(self) -> str:
        return f"{self.user}@{self.host}"

    @property
    def user_host_pretty(self) -> str:
        return f"{self.user_host}:{self.port}"
