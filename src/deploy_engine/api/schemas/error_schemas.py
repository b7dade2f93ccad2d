"""Boundary representation of engine errors.

Only what is safe to show to API clients leaves the engine: environment
variables attached to command errors are never serialized.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from deploy_engine.domain.errors import CommandError, EngineError, ErrorKind


class Tag(str, Enum):
    """Error tags exposed to API clients, in SCREAMING_SNAKE_CASE."""

    UNKNOWN = "UNKNOWN"
    INVALID_ENGINE_API_INPUT_CANNOT_BE_DESERIALIZED = "INVALID_ENGINE_API_INPUT_CANNOT_BE_DESERIALIZED"
    INVALID_ENGINE_PAYLOAD = "INVALID_ENGINE_PAYLOAD"
    MISSING_REQUIRED_ENV_VARIABLE = "MISSING_REQUIRED_ENV_VARIABLE"
    CANNOT_GET_WORKSPACE_DIRECTORY = "CANNOT_GET_WORKSPACE_DIRECTORY"
    CANNOT_CREATE_FILE = "CANNOT_CREATE_FILE"
    CANNOT_READ_FILE = "CANNOT_READ_FILE"
    CANNOT_COPY_FILES_FROM_DIRECTORY_TO_DIRECTORY = "CANNOT_COPY_FILES_FROM_DIRECTORY_TO_DIRECTORY"
    CANNOT_FIND_REQUIRED_BINARY = "CANNOT_FIND_REQUIRED_BINARY"
    CANNOT_PARSE_STRING = "CANNOT_PARSE_STRING"
    JSON_DESERIALIZATION_ERROR = "JSON_DESERIALIZATION_ERROR"
    BASE64_DECODE_ISSUE = "BASE64_DECODE_ISSUE"
    NOT_IMPLEMENTED_ERROR = "NOT_IMPLEMENTED_ERROR"
    VERSION_NUMBER_PARSING_ERROR = "VERSION_NUMBER_PARSING_ERROR"
    TASK_CANCELLED = "TASK_CANCELLED"
    JOB_FAILURE = "JOB_FAILURE"
    UNSUPPORTED_VERSION = "UNSUPPORTED_VERSION"
    UNSUPPORTED_REGION = "UNSUPPORTED_REGION"
    UNSUPPORTED_ZONE = "UNSUPPORTED_ZONE"
    UNSUPPORTED_INSTANCE_TYPE = "UNSUPPORTED_INSTANCE_TYPE"
    NOT_ALLOWED_INSTANCE_TYPE = "NOT_ALLOWED_INSTANCE_TYPE"
    DO_NOT_RESPECT_CLOUD_PROVIDER_BEST_PRACTICES = "DO_NOT_RESPECT_CLOUD_PROVIDER_BEST_PRACTICES"
    CANNOT_RETRIEVE_CLUSTER_CONFIG_FILE = "CANNOT_RETRIEVE_CLUSTER_CONFIG_FILE"
    CANNOT_CONNECT_K8S_CLUSTER = "CANNOT_CONNECT_K8S_CLUSTER"
    KUBECONFIG_FILE_DO_NOT_PERMIT_TO_CONNECT_TO_K8S_CLUSTER = "KUBECONFIG_FILE_DO_NOT_PERMIT_TO_CONNECT_TO_K8S_CLUSTER"
    KUBECONFIG_SECURITY_CHECK_ERROR = "KUBECONFIG_SECURITY_CHECK_ERROR"
    CLUSTER_HAS_NO_WORKER_NODES = "CLUSTER_HAS_NO_WORKER_NODES"
    CANNOT_GET_CLUSTER_NODES = "CANNOT_GET_CLUSTER_NODES"
    NOT_ENOUGH_NODES_AVAILABLE_TO_DEPLOY_ENVIRONMENT = "NOT_ENOUGH_NODES_AVAILABLE_TO_DEPLOY_ENVIRONMENT"
    NOT_ENOUGH_RESOURCES_TO_DEPLOY_ENVIRONMENT = "NOT_ENOUGH_RESOURCES_TO_DEPLOY_ENVIRONMENT"
    CLUSTER_SECRETS_MANIPULATION_ERROR = "CLUSTER_SECRETS_MANIPULATION_ERROR"
    K8S_CANNOT_REACH_TO_API = "K8S_CANNOT_REACH_TO_API"
    K8S_CANNOT_CREATE_NAMESPACE = "K8S_CANNOT_CREATE_NAMESPACE"
    K8S_CANNOT_DELETE_POD = "K8S_CANNOT_DELETE_POD"
    K8S_CANNOT_DELETE_PVC = "K8S_CANNOT_DELETE_PVC"
    K8S_CANNOT_GET_PODS = "K8S_CANNOT_GET_PODS"
    K8S_CANNOT_GET_CRASH_LOOPING_PODS = "K8S_CANNOT_GET_CRASH_LOOPING_PODS"
    K8S_CANNOT_DELETE_COMPLETED_JOBS = "K8S_CANNOT_DELETE_COMPLETED_JOBS"
    K8S_CANNOT_GET_PVCS = "K8S_CANNOT_GET_PVCS"
    K8S_CANNOT_BOUND_PVC = "K8S_CANNOT_BOUND_PVC"
    K8S_CANNOT_PVC_EDIT = "K8S_CANNOT_PVC_EDIT"
    K8S_CANNOT_GET_SERVICES = "K8S_CANNOT_GET_SERVICES"
    K8S_CANNOT_GET_STATEFULSET = "K8S_CANNOT_GET_STATEFULSET"
    K8S_CANNOT_ROLLOUT_RESTART_STATEFULSET = "K8S_CANNOT_ROLLOUT_RESTART_STATEFULSET"
    K8S_CANNOT_ORPHAN_DELETE = "K8S_CANNOT_ORPHAN_DELETE"
    K8S_CANNOT_APPLY_FROM_FILE = "K8S_CANNOT_APPLY_FROM_FILE"
    K8S_SCALE_REPLICAS = "K8S_SCALE_REPLICAS"
    K8S_SERVICE_ERROR = "K8S_SERVICE_ERROR"
    K8S_GET_LOGS = "K8S_GET_LOGS"
    K8S_GET_EVENTS = "K8S_GET_EVENTS"
    K8S_DESCRIBE = "K8S_DESCRIBE"
    K8S_HISTORY = "K8S_HISTORY"
    K8S_POD_IS_NOT_READY = "K8S_POD_IS_NOT_READY"
    K8S_NODE_IS_NOT_READY = "K8S_NODE_IS_NOT_READY"
    K8S_ERROR_COPY_SECRET = "K8S_ERROR_COPY_SECRET"
    K8S_LOAD_BALANCER_CONFIGURATION_ISSUE = "K8S_LOAD_BALANCER_CONFIGURATION_ISSUE"
    K8S_POD_DISRUPTION_BUDGET_IN_INVALID_STATE = "K8S_POD_DISRUPTION_BUDGET_IN_INVALID_STATE"
    K8S_GET_DEPLOYMENT_ERROR = "K8S_GET_DEPLOYMENT_ERROR"
    K8S_DELETE_DEPLOYMENT_ERROR = "K8S_DELETE_DEPLOYMENT_ERROR"
    K8S_GET_STATEFULSET_ERROR = "K8S_GET_STATEFULSET_ERROR"
    K8S_DELETE_STATEFULSET_ERROR = "K8S_DELETE_STATEFULSET_ERROR"
    K8S_ADDON_VERSION_NOT_SUPPORTED = "K8S_ADDON_VERSION_NOT_SUPPORTED"
    SERVICE_MISSING_STORAGE = "SERVICE_MISSING_STORAGE"
    CANNOT_RESTART_SERVICE = "CANNOT_RESTART_SERVICE"
    CANNOT_UNINSTALL_HELM_CHART = "CANNOT_UNINSTALL_HELM_CHART"
    HELM_CHARTS_SETUP_ERROR = "HELM_CHARTS_SETUP_ERROR"
    HELM_CHARTS_DEPLOY_ERROR = "HELM_CHARTS_DEPLOY_ERROR"
    HELM_CHARTS_UPGRADE_ERROR = "HELM_CHARTS_UPGRADE_ERROR"
    HELM_CHART_UNINSTALL_ERROR = "HELM_CHART_UNINSTALL_ERROR"
    HELM_DEPLOY_TIMEOUT = "HELM_DEPLOY_TIMEOUT"
    HELM_HISTORY_ERROR = "HELM_HISTORY_ERROR"
    TERRAFORM_UNKNOWN_ERROR = "TERRAFORM_UNKNOWN_ERROR"
    TERRAFORM_ERROR_WHILE_EXECUTING_PIPELINE = "TERRAFORM_ERROR_WHILE_EXECUTING_PIPELINE"
    TERRAFORM_ERROR_WHILE_EXECUTING_DESTROY_PIPELINE = "TERRAFORM_ERROR_WHILE_EXECUTING_DESTROY_PIPELINE"
    TERRAFORM_CANNOT_REMOVE_ENTRY_OUT = "TERRAFORM_CANNOT_REMOVE_ENTRY_OUT"
    TERRAFORM_CANNOT_IMPORT_RESOURCE = "TERRAFORM_CANNOT_IMPORT_RESOURCE"
    TERRAFORM_CONFIG_FILE_INVALID_CONTENT = "TERRAFORM_CONFIG_FILE_INVALID_CONTENT"
    TERRAFORM_CANNOT_DELETE_LOCK_FILE = "TERRAFORM_CANNOT_DELETE_LOCK_FILE"
    TERRAFORM_INIT_ERROR = "TERRAFORM_INIT_ERROR"
    TERRAFORM_VALIDATE_ERROR = "TERRAFORM_VALIDATE_ERROR"
    TERRAFORM_PLAN_ERROR = "TERRAFORM_PLAN_ERROR"
    TERRAFORM_APPLY_ERROR = "TERRAFORM_APPLY_ERROR"
    TERRAFORM_STATELIST_ERROR = "TERRAFORM_STATELIST_ERROR"
    TERRAFORM_DESTROY_ERROR = "TERRAFORM_DESTROY_ERROR"
    TERRAFORM_CLOUD_PROVIDER_QUOTAS_REACHED = "TERRAFORM_CLOUD_PROVIDER_QUOTAS_REACHED"
    TERRAFORM_CLOUD_PROVIDER_ACTIVATION_REQUIRED = "TERRAFORM_CLOUD_PROVIDER_ACTIVATION_REQUIRED"
    TERRAFORM_INVALID_CREDENTIALS = "TERRAFORM_INVALID_CREDENTIALS"
    TERRAFORM_SERVICE_NOT_ACTIVATED_OPT_IN_REQUIRED = "TERRAFORM_SERVICE_NOT_ACTIVATED_OPT_IN_REQUIRED"
    TERRAFORM_NOT_ENOUGH_PERMISSIONS = "TERRAFORM_NOT_ENOUGH_PERMISSIONS"
    TERRAFORM_WAITING_TIMEOUT_RESOURCE = "TERRAFORM_WAITING_TIMEOUT_RESOURCE"
    TERRAFORM_ALREADY_EXISTING_RESOURCE = "TERRAFORM_ALREADY_EXISTING_RESOURCE"
    TERRAFORM_WRONG_STATE = "TERRAFORM_WRONG_STATE"
    TERRAFORM_RESOURCE_DEPENDENCY_VIOLATION = "TERRAFORM_RESOURCE_DEPENDENCY_VIOLATION"
    TERRAFORM_CONTEXT_UNSUPPORTED_PARAMETER_VALUE = "TERRAFORM_CONTEXT_UNSUPPORTED_PARAMETER_VALUE"
    TERRAFORM_CONFIG_MISMATCH = "TERRAFORM_CONFIG_MISMATCH"
    TERRAFORM_INSTANCE_TYPE_DOESNT_EXIST = "TERRAFORM_INSTANCE_TYPE_DOESNT_EXIST"
    TERRAFORM_MULTIPLE_INTERRUPTS_RECEIVED = "TERRAFORM_MULTIPLE_INTERRUPTS_RECEIVED"
    TERRAFORM_ACCOUNT_BLOCKED_BY_PROVIDER = "TERRAFORM_ACCOUNT_BLOCKED_BY_PROVIDER"
    TERRAFORM_INSTANCE_VOLUME_CANNOT_BE_REDUCED = "TERRAFORM_INSTANCE_VOLUME_CANNOT_BE_REDUCED"
    TERRAFORM_INVALID_CIDR_BLOCK = "TERRAFORM_INVALID_CIDR_BLOCK"
    TERRAFORM_STATE_LOCKED = "TERRAFORM_STATE_LOCKED"
    TERRAFORM_CLUSTER_UNSUPPORTED_VERSION_UPDATE = "TERRAFORM_CLUSTER_UNSUPPORTED_VERSION_UPDATE"
    DATABASE_ERROR = "DATABASE_ERROR"
    DATABASE_FAILED_TO_START_AFTER_SEVERAL_RETRIES = "DATABASE_FAILED_TO_START_AFTER_SEVERAL_RETRIES"
    DATABASE_INSTANCE_TYPE_MISMATCH_CLOUD_PROVIDER = "DATABASE_INSTANCE_TYPE_MISMATCH_CLOUD_PROVIDER"
    CANNOT_PAUSE_MANAGED_DATABASE = "CANNOT_PAUSE_MANAGED_DATABASE"
    CLIENT_SERVICE_FAILED_TO_START = "CLIENT_SERVICE_FAILED_TO_START"
    CLIENT_SERVICE_FAILED_TO_DEPLOY_BEFORE_START = "CLIENT_SERVICE_FAILED_TO_DEPLOY_BEFORE_START"
    ROUTER_FAILED_TO_DEPLOY = "ROUTER_FAILED_TO_DEPLOY"
    CONTAINER_REGISTRY_CANNOT_CREATE_REPOSITORY = "CONTAINER_REGISTRY_CANNOT_CREATE_REPOSITORY"
    CONTAINER_REGISTRY_CANNOT_GET_CREDENTIALS = "CONTAINER_REGISTRY_CANNOT_GET_CREDENTIALS"
    CONTAINER_REGISTRY_IMAGE_DOESNT_EXIST = "CONTAINER_REGISTRY_IMAGE_DOESNT_EXIST"
    CONTAINER_REGISTRY_IMAGE_UNREACHABLE_AFTER_PUSH = "CONTAINER_REGISTRY_IMAGE_UNREACHABLE_AFTER_PUSH"
    CONTAINER_REGISTRY_REPOSITORY_DOESNT_EXIST_IN_REGISTRY = "CONTAINER_REGISTRY_REPOSITORY_DOESNT_EXIST_IN_REGISTRY"
    CONTAINER_REGISTRY_CANNOT_DELETE_IMAGE = "CONTAINER_REGISTRY_CANNOT_DELETE_IMAGE"
    CONTAINER_REGISTRY_INVALID_CREDENTIALS = "CONTAINER_REGISTRY_INVALID_CREDENTIALS"
    CONTAINER_REGISTRY_UNKNOWN_ERROR = "CONTAINER_REGISTRY_UNKNOWN_ERROR"
    OBJECT_STORAGE_INVALID_BUCKET_NAME = "OBJECT_STORAGE_INVALID_BUCKET_NAME"
    OBJECT_STORAGE_CANNOT_CREATE_BUCKET = "OBJECT_STORAGE_CANNOT_CREATE_BUCKET"
    OBJECT_STORAGE_CANNOT_DELETE_BUCKET = "OBJECT_STORAGE_CANNOT_DELETE_BUCKET"
    OBJECT_STORAGE_CANNOT_EMPTY_BUCKET = "OBJECT_STORAGE_CANNOT_EMPTY_BUCKET"
    OBJECT_STORAGE_QUOTA_EXCEEDED = "OBJECT_STORAGE_QUOTA_EXCEEDED"
    OBJECT_STORAGE_CANNOT_GET_OBJECT_FILE = "OBJECT_STORAGE_CANNOT_GET_OBJECT_FILE"
    OBJECT_STORAGE_CANNOT_PUT_FILE_INTO_BUCKET = "OBJECT_STORAGE_CANNOT_PUT_FILE_INTO_BUCKET"
    DNS_PROVIDER_INFORMATION_ERROR = "DNS_PROVIDER_INFORMATION_ERROR"
    DNS_PROVIDER_INVALID_CREDENTIALS = "DNS_PROVIDER_INVALID_CREDENTIALS"
    DNS_PROVIDER_INVALID_API_URL = "DNS_PROVIDER_INVALID_API_URL"
    CLOUD_PROVIDER_INFORMATION_ERROR = "CLOUD_PROVIDER_INFORMATION_ERROR"
    CLOUD_PROVIDER_CLIENT_INVALID_CREDENTIALS = "CLOUD_PROVIDER_CLIENT_INVALID_CREDENTIALS"
    CLOUD_PROVIDER_API_MISSING_INFO = "CLOUD_PROVIDER_API_MISSING_INFO"
    CLOUD_PROVIDER_GET_LOAD_BALANCER = "CLOUD_PROVIDER_GET_LOAD_BALANCER"
    CLOUD_PROVIDER_DELETE_LOAD_BALANCER = "CLOUD_PROVIDER_DELETE_LOAD_BALANCER"
    VAULT_CONNECTION_ERROR = "VAULT_CONNECTION_ERROR"
    VAULT_SECRET_COULD_NOT_BE_RETRIEVED = "VAULT_SECRET_COULD_NOT_BE_RETRIEVED"
    AWS_SDK_GET_CLIENT = "AWS_SDK_GET_CLIENT"
    AWS_SDK_LIST_RDS_INSTANCES = "AWS_SDK_LIST_RDS_INSTANCES"
    AWS_SDK_LIST_ELASTICACHE_CLUSTERS = "AWS_SDK_LIST_ELASTICACHE_CLUSTERS"
    AWS_SDK_LIST_DOC_DB_CLUSTERS = "AWS_SDK_LIST_DOC_DB_CLUSTERS"


def to_tag(kind: ErrorKind) -> Tag:
    """Boundary tag of an error kind; a kind without one becomes UNKNOWN."""
    return Tag.__members__.get(kind.name, Tag.UNKNOWN)


class CommandErrorResponse(BaseModel):
    message: str
    full_details: str = ""

    @classmethod
    def from_command_error(cls, error: CommandError) -> CommandErrorResponse:
        return cls(message=error.message_safe, full_details=error.full_details or "")


class EventDetailsResponse(BaseModel):
    provider_kind: str | None = None
    organization_id: str
    cluster_id: str
    execution_id: str
    region: str | None = None
    stage: str
    transmitter_kind: str
    transmitter_id: str
    transmitter_name: str = ""


class EngineErrorResponse(BaseModel):
    tag: Tag
    event_details: EventDetailsResponse
    user_log_message: str
    underlying_error: CommandErrorResponse | None = None
    link: str | None = None
    hint_message: str | None = None

    @classmethod
    def from_engine_error(cls, error: EngineError) -> EngineErrorResponse:
        details = error.event_details
        return cls(
            tag=to_tag(error.tag),
            event_details=EventDetailsResponse(
                provider_kind=details.provider_kind.value if details.provider_kind else None,
                organization_id=details.organization_id,
                cluster_id=details.cluster_id,
                execution_id=details.execution_id,
                region=details.region,
                stage=str(details.stage),
                transmitter_kind=details.transmitter.kind.value,
                transmitter_id=details.transmitter.id,
                transmitter_name=details.transmitter.name,
            ),
            user_log_message=error.user_log_message,
            underlying_error=(
                CommandErrorResponse.from_command_error(error.underlying_error)
                if error.underlying_error is not None
                else None
            ),
            link=error.link,
            hint_message=error.hint_message,
        )


class ErrorResponse(BaseModel):
    """Payload of 4xx responses raised before any pipeline ran."""

    error: str
    message: str
