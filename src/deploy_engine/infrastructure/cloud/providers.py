"""Cloud provider credentials handed to the external tools."""

from __future__ import annotations

from pydantic import SecretStr

from deploy_engine.domain.models.cloud_provider import CloudProviderKind
from deploy_engine.domain.ports.services import CloudProvider


class AwsCloudProvider(CloudProvider):
    def __init__(self, access_key_id: str, secret_access_key: SecretStr, region: str) -> None:
        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key
        self._region = region

    @property
    def kind(self) -> CloudProviderKind:
        return CloudProviderKind.AWS

    def credentials_environment_variables(self) -> list[tuple[str, str]]:
        return [
            ("AWS_ACCESS_KEY_ID", self._access_key_id),
            ("AWS_SECRET_ACCESS_KEY", self._secret_access_key.get_secret_value()),
            ("AWS_DEFAULT_REGION", self._region),
        ]

    def template_environment_variables(self) -> list[tuple[str, str]]:
        return [("aws_region", self._region)]


class ScalewayCloudProvider(CloudProvider):
    def __init__(self, access_key: str, secret_key: SecretStr, project_id: str, region: str) -> None:
        self._access_key = access_key
        self._secret_key = secret_key
        self._project_id = project_id
        self._region = region

    @property
    def kind(self) -> CloudProviderKind:
        return CloudProviderKind.SCW

    def credentials_environment_variables(self) -> list[tuple[str, str]]:
        return [
            ("SCW_ACCESS_KEY", self._access_key),
            ("SCW_SECRET_KEY", self._secret_key.get_secret_value()),
            ("SCW_DEFAULT_PROJECT_ID", self._project_id),
            ("SCW_DEFAULT_REGION", self._region),
        ]

    def template_environment_variables(self) -> list[tuple[str, str]]:
        return [("scw_region", self._region), ("scw_project_id", self._project_id)]


class GcpCloudProvider(CloudProvider):
    def __init__(self, project_id: str, credentials_json: SecretStr, region: str) -> None:
        self._project_id = project_id
        self._credentials_json = credentials_json
        self._region = region

    @property
    def kind(self) -> CloudProviderKind:
        return CloudProviderKind.GCP

    def credentials_environment_variables(self) -> list[tuple[str, str]]:
        return [
            ("GOOGLE_CREDENTIALS", self._credentials_json.get_secret_value()),
            ("GOOGLE_PROJECT", self._project_id),
            ("GOOGLE_REGION", self._region),
        ]

    def template_environment_variables(self) -> list[tuple[str, str]]:
        return [("gcp_region", self._region), ("gcp_project_id", self._project_id)]
