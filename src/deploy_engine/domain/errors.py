"""Engine error taxonomy.

Every failure reported by a collaborator (Helm, Terraform, kubectl, template
rendering) is raised as a :class:`CommandError` and wrapped at the call site
into an :class:`EngineError` carrying a closed :class:`ErrorKind`, a message
that is safe to show to end users, and the original command error, which may
hold sensitive details and is never surfaced raw.
"""

from __future__ import annotations

from enum import Enum
from uuid import UUID

from deploy_engine.domain.events.event_details import EventDetails


class ErrorKind(str, Enum):
    """Closed set of engine error discriminants, grouped by subsystem."""

    # Generic
    UNKNOWN = "unknown"
    INVALID_ENGINE_API_INPUT_CANNOT_BE_DESERIALIZED = "invalid_engine_api_input_cannot_be_deserialized"
    INVALID_ENGINE_PAYLOAD = "invalid_engine_payload"
    MISSING_REQUIRED_ENV_VARIABLE = "missing_required_env_variable"
    CANNOT_GET_WORKSPACE_DIRECTORY = "cannot_get_workspace_directory"
    CANNOT_CREATE_FILE = "cannot_create_file"
    CANNOT_READ_FILE = "cannot_read_file"
    CANNOT_COPY_FILES_FROM_DIRECTORY_TO_DIRECTORY = "cannot_copy_files_from_directory_to_directory"
    CANNOT_FIND_REQUIRED_BINARY = "cannot_find_required_binary"
    CANNOT_PARSE_STRING = "cannot_parse_string"
    JSON_DESERIALIZATION_ERROR = "json_deserialization_error"
    BASE64_DECODE_ISSUE = "base64_decode_issue"
    VERSION_NUMBER_PARSING_ERROR = "version_number_parsing_error"
    NOT_IMPLEMENTED_ERROR = "not_implemented_error"
    TASK_CANCELLED = "task_cancelled"
    JOB_FAILURE = "job_failure"
    UNSUPPORTED_VERSION = "unsupported_version"
    UNSUPPORTED_REGION = "unsupported_region"
    UNSUPPORTED_ZONE = "unsupported_zone"
    UNSUPPORTED_INSTANCE_TYPE = "unsupported_instance_type"
    NOT_ALLOWED_INSTANCE_TYPE = "not_allowed_instance_type"
    DO_NOT_RESPECT_CLOUD_PROVIDER_BEST_PRACTICES = "do_not_respect_cloud_provider_best_practices"

    # Cluster access
    CANNOT_RETRIEVE_CLUSTER_CONFIG_FILE = "cannot_retrieve_cluster_config_file"
    CANNOT_CONNECT_K8S_CLUSTER = "cannot_connect_k8s_cluster"
    KUBECONFIG_FILE_DO_NOT_PERMIT_TO_CONNECT_TO_K8S_CLUSTER = "kubeconfig_file_do_not_permit_to_connect_to_k8s_cluster"
    KUBECONFIG_SECURITY_CHECK_ERROR = "kubeconfig_security_check_error"
    CLUSTER_HAS_NO_WORKER_NODES = "cluster_has_no_worker_nodes"
    CANNOT_GET_CLUSTER_NODES = "cannot_get_cluster_nodes"
    NOT_ENOUGH_NODES_AVAILABLE_TO_DEPLOY_ENVIRONMENT = "not_enough_nodes_available_to_deploy_environment"
    NOT_ENOUGH_RESOURCES_TO_DEPLOY_ENVIRONMENT = "not_enough_resources_to_deploy_environment"
    CLUSTER_SECRETS_MANIPULATION_ERROR = "cluster_secrets_manipulation_error"

    # Kubernetes
    K8S_CANNOT_REACH_TO_API = "k8s_cannot_reach_to_api"
    K8S_CANNOT_CREATE_NAMESPACE = "k8s_cannot_create_namespace"
    K8S_CANNOT_DELETE_POD = "k8s_cannot_delete_pod"
    K8S_CANNOT_DELETE_PVC = "k8s_cannot_delete_pvc"
    K8S_CANNOT_GET_PODS = "k8s_cannot_get_pods"
    K8S_CANNOT_GET_CRASH_LOOPING_PODS = "k8s_cannot_get_crash_looping_pods"
    K8S_CANNOT_DELETE_COMPLETED_JOBS = "k8s_cannot_delete_completed_jobs"
    K8S_CANNOT_GET_PVCS = "k8s_cannot_get_pvcs"
    K8S_CANNOT_BOUND_PVC = "k8s_cannot_bound_pvc"
    K8S_CANNOT_PVC_EDIT = "k8s_cannot_pvc_edit"
    K8S_CANNOT_GET_SERVICES = "k8s_cannot_get_services"
    K8S_CANNOT_GET_STATEFULSET = "k8s_cannot_get_statefulset"
    K8S_CANNOT_ROLLOUT_RESTART_STATEFULSET = "k8s_cannot_rollout_restart_statefulset"
    K8S_CANNOT_ORPHAN_DELETE = "k8s_cannot_orphan_delete"
    K8S_CANNOT_APPLY_FROM_FILE = "k8s_cannot_apply_from_file"
    K8S_SCALE_REPLICAS = "k8s_scale_replicas"
    K8S_SERVICE_ERROR = "k8s_service_error"
    K8S_GET_LOGS = "k8s_get_logs"
    K8S_GET_EVENTS = "k8s_get_events"
    K8S_DESCRIBE = "k8s_describe"
    K8S_HISTORY = "k8s_history"
    K8S_POD_IS_NOT_READY = "k8s_pod_is_not_ready"
    K8S_NODE_IS_NOT_READY = "k8s_node_is_not_ready"
    K8S_ERROR_COPY_SECRET = "k8s_error_copy_secret"
    K8S_LOAD_BALANCER_CONFIGURATION_ISSUE = "k8s_load_balancer_configuration_issue"
    K8S_POD_DISRUPTION_BUDGET_IN_INVALID_STATE = "k8s_pod_disruption_budget_in_invalid_state"
    K8S_GET_DEPLOYMENT_ERROR = "k8s_get_deployment_error"
    K8S_DELETE_DEPLOYMENT_ERROR = "k8s_delete_deployment_error"
    K8S_GET_STATEFULSET_ERROR = "k8s_get_statefulset_error"
    K8S_DELETE_STATEFULSET_ERROR = "k8s_delete_statefulset_error"
    K8S_ADDON_VERSION_NOT_SUPPORTED = "k8s_addon_version_not_supported"
    SERVICE_MISSING_STORAGE = "service_missing_storage"
    CANNOT_RESTART_SERVICE = "cannot_restart_service"

    # Helm
    CANNOT_UNINSTALL_HELM_CHART = "cannot_uninstall_helm_chart"
    HELM_CHARTS_SETUP_ERROR = "helm_charts_setup_error"
    HELM_CHARTS_DEPLOY_ERROR = "helm_charts_deploy_error"
    HELM_CHARTS_UPGRADE_ERROR = "helm_charts_upgrade_error"
    HELM_CHART_UNINSTALL_ERROR = "helm_chart_uninstall_error"
    HELM_DEPLOY_TIMEOUT = "helm_deploy_timeout"
    HELM_HISTORY_ERROR = "helm_history_error"

    # Terraform
    TERRAFORM_UNKNOWN_ERROR = "terraform_unknown_error"
    TERRAFORM_ERROR_WHILE_EXECUTING_PIPELINE = "terraform_error_while_executing_pipeline"
    TERRAFORM_ERROR_WHILE_EXECUTING_DESTROY_PIPELINE = "terraform_error_while_executing_destroy_pipeline"
    TERRAFORM_CANNOT_REMOVE_ENTRY_OUT = "terraform_cannot_remove_entry_out"
    TERRAFORM_CANNOT_IMPORT_RESOURCE = "terraform_cannot_import_resource"
    TERRAFORM_CONFIG_FILE_INVALID_CONTENT = "terraform_config_file_invalid_content"
    TERRAFORM_CANNOT_DELETE_LOCK_FILE = "terraform_cannot_delete_lock_file"
    TERRAFORM_INIT_ERROR = "terraform_init_error"
    TERRAFORM_VALIDATE_ERROR = "terraform_validate_error"
    TERRAFORM_PLAN_ERROR = "terraform_plan_error"
    TERRAFORM_APPLY_ERROR = "terraform_apply_error"
    TERRAFORM_STATELIST_ERROR = "terraform_statelist_error"
    TERRAFORM_DESTROY_ERROR = "terraform_destroy_error"
    TERRAFORM_CLOUD_PROVIDER_QUOTAS_REACHED = "terraform_cloud_provider_quotas_reached"
    TERRAFORM_CLOUD_PROVIDER_ACTIVATION_REQUIRED = "terraform_cloud_provider_activation_required"
    TERRAFORM_INVALID_CREDENTIALS = "terraform_invalid_credentials"
    TERRAFORM_SERVICE_NOT_ACTIVATED_OPT_IN_REQUIRED = "terraform_service_not_activated_opt_in_required"
    TERRAFORM_NOT_ENOUGH_PERMISSIONS = "terraform_not_enough_permissions"
    TERRAFORM_WAITING_TIMEOUT_RESOURCE = "terraform_waiting_timeout_resource"
    TERRAFORM_ALREADY_EXISTING_RESOURCE = "terraform_already_existing_resource"
    TERRAFORM_WRONG_STATE = "terraform_wrong_state"
    TERRAFORM_RESOURCE_DEPENDENCY_VIOLATION = "terraform_resource_dependency_violation"
    TERRAFORM_CONTEXT_UNSUPPORTED_PARAMETER_VALUE = "terraform_context_unsupported_parameter_value"
    TERRAFORM_CONFIG_MISMATCH = "terraform_config_mismatch"
    TERRAFORM_INSTANCE_TYPE_DOESNT_EXIST = "terraform_instance_type_doesnt_exist"
    TERRAFORM_MULTIPLE_INTERRUPTS_RECEIVED = "terraform_multiple_interrupts_received"
    TERRAFORM_ACCOUNT_BLOCKED_BY_PROVIDER = "terraform_account_blocked_by_provider"
    TERRAFORM_INSTANCE_VOLUME_CANNOT_BE_REDUCED = "terraform_instance_volume_cannot_be_reduced"
    TERRAFORM_INVALID_CIDR_BLOCK = "terraform_invalid_cidr_block"
    TERRAFORM_STATE_LOCKED = "terraform_state_locked"
    TERRAFORM_CLUSTER_UNSUPPORTED_VERSION_UPDATE = "terraform_cluster_unsupported_version_update"

    # Databases and client services
    DATABASE_ERROR = "database_error"
    DATABASE_FAILED_TO_START_AFTER_SEVERAL_RETRIES = "database_failed_to_start_after_several_retries"
    DATABASE_INSTANCE_TYPE_MISMATCH_CLOUD_PROVIDER = "database_instance_type_mismatch_cloud_provider"
    CANNOT_PAUSE_MANAGED_DATABASE = "cannot_pause_managed_database"
    CLIENT_SERVICE_FAILED_TO_START = "client_service_failed_to_start"
    CLIENT_SERVICE_FAILED_TO_DEPLOY_BEFORE_START = "client_service_failed_to_deploy_before_start"
    ROUTER_FAILED_TO_DEPLOY = "router_failed_to_deploy"

    # Container registry
    CONTAINER_REGISTRY_CANNOT_CREATE_REPOSITORY = "container_registry_cannot_create_repository"
    CONTAINER_REGISTRY_CANNOT_GET_CREDENTIALS = "container_registry_cannot_get_credentials"
    CONTAINER_REGISTRY_IMAGE_DOESNT_EXIST = "container_registry_image_doesnt_exist"
    CONTAINER_REGISTRY_IMAGE_UNREACHABLE_AFTER_PUSH = "container_registry_image_unreachable_after_push"
    CONTAINER_REGISTRY_REPOSITORY_DOESNT_EXIST_IN_REGISTRY = "container_registry_repository_doesnt_exist_in_registry"
    CONTAINER_REGISTRY_CANNOT_DELETE_IMAGE = "container_registry_cannot_delete_image"
    CONTAINER_REGISTRY_INVALID_CREDENTIALS = "container_registry_invalid_credentials"
    CONTAINER_REGISTRY_UNKNOWN_ERROR = "container_registry_unknown_error"

    # Object storage
    OBJECT_STORAGE_INVALID_BUCKET_NAME = "object_storage_invalid_bucket_name"
    OBJECT_STORAGE_CANNOT_CREATE_BUCKET = "object_storage_cannot_create_bucket"
    OBJECT_STORAGE_CANNOT_DELETE_BUCKET = "object_storage_cannot_delete_bucket"
    OBJECT_STORAGE_CANNOT_EMPTY_BUCKET = "object_storage_cannot_empty_bucket"
    OBJECT_STORAGE_QUOTA_EXCEEDED = "object_storage_quota_exceeded"
    OBJECT_STORAGE_CANNOT_GET_OBJECT_FILE = "object_storage_cannot_get_object_file"
    OBJECT_STORAGE_CANNOT_PUT_FILE_INTO_BUCKET = "object_storage_cannot_put_file_into_bucket"

    # DNS provider
    DNS_PROVIDER_INFORMATION_ERROR = "dns_provider_information_error"
    DNS_PROVIDER_INVALID_CREDENTIALS = "dns_provider_invalid_credentials"
    DNS_PROVIDER_INVALID_API_URL = "dns_provider_invalid_api_url"

    # Cloud provider SDK
    CLOUD_PROVIDER_INFORMATION_ERROR = "cloud_provider_information_error"
    CLOUD_PROVIDER_CLIENT_INVALID_CREDENTIALS = "cloud_provider_client_invalid_credentials"
    CLOUD_PROVIDER_API_MISSING_INFO = "cloud_provider_api_missing_info"
    CLOUD_PROVIDER_GET_LOAD_BALANCER = "cloud_provider_get_load_balancer"
    CLOUD_PROVIDER_DELETE_LOAD_BALANCER = "cloud_provider_delete_load_balancer"
    AWS_SDK_GET_CLIENT = "aws_sdk_get_client"
    AWS_SDK_LIST_RDS_INSTANCES = "aws_sdk_list_rds_instances"
    AWS_SDK_LIST_ELASTICACHE_CLUSTERS = "aws_sdk_list_elasticache_clusters"
    AWS_SDK_LIST_DOC_DB_CLUSTERS = "aws_sdk_list_doc_db_clusters"

    # Secret storage
    VAULT_CONNECTION_ERROR = "vault_connection_error"
    VAULT_SECRET_COULD_NOT_BE_RETRIEVED = "vault_secret_could_not_be_retrieved"


class CommandError(Exception):
    """Failure of an external command or API call.

    ``message_safe`` can be shown to end users. ``full_details`` may contain
    raw command output and ``env_vars`` the environment the command ran
    with; both stay internal.
    """

    def __init__(
        self,
        message_safe: str,
        full_details: str | None = None,
        env_vars: list[tuple[str, str]] | None = None,
    ) -> None:
        super().__init__(message_safe)
        self.message_safe = message_safe
        self.full_details = full_details
        self.env_vars = env_vars

    def message(self) -> str:
        """Safe message followed by the full details, if any."""
        if self.full_details:
            return f"{self.message_safe} / Full details: {self.full_details}"
        return self.message_safe

    def flattened(self) -> CommandError:
        """Copy of this error without its environment variables."""
        return CommandError(self.message_safe, self.full_details)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CommandError):
            return NotImplemented
        return (
            self.message_safe == other.message_safe
            and self.full_details == other.full_details
        )

    __hash__ = Exception.__hash__


class HelmErrorKind(str, Enum):
    CMD_ERROR = "cmd_error"
    TIMEOUT = "timeout"
    RELEASE_LOCKED = "release_locked"
    CANNOT_ROLLBACK = "cannot_rollback"
    INVALID_KUBECONFIG = "invalid_kubeconfig"


class HelmError(CommandError):
    """Failure of a Helm command on a given release."""

    def __init__(
        self,
        kind: HelmErrorKind,
        release: str,
        action: str,
        message_safe: str,
        full_details: str | None = None,
        env_vars: list[tuple[str, str]] | None = None,
    ) -> None:
        super().__init__(message_safe, full_details, env_vars)
        self.kind = kind
        self.release = release
        self.action = action


class TerraformErrorKind(str, Enum):
    UNKNOWN = "unknown"
    INIT = "init"
    VALIDATE = "validate"
    PLAN = "plan"
    APPLY = "apply"
    DESTROY = "destroy"
    STATE_LIST = "state_list"
    CONFIG_FILE_INVALID_CONTENT = "config_file_invalid_content"
    CANNOT_DELETE_LOCK_FILE = "cannot_delete_lock_file"
    STATE_LOCKED = "state_locked"
    QUOTAS_REACHED = "quotas_reached"
    ACTIVATION_REQUIRED = "activation_required"
    INVALID_CREDENTIALS = "invalid_credentials"
    SERVICE_NOT_ACTIVATED_OPT_IN_REQUIRED = "service_not_activated_opt_in_required"
    NOT_ENOUGH_PERMISSIONS = "not_enough_permissions"
    WAITING_TIMEOUT_RESOURCE = "waiting_timeout_resource"
    ALREADY_EXISTING_RESOURCE = "already_existing_resource"
    WRONG_STATE = "wrong_state"
    RESOURCE_DEPENDENCY_VIOLATION = "resource_dependency_violation"
    INSTANCE_TYPE_DOESNT_EXIST = "instance_type_doesnt_exist"
    INSTANCE_VOLUME_CANNOT_BE_REDUCED = "instance_volume_cannot_be_reduced"
    INVALID_CIDR_BLOCK = "invalid_cidr_block"
    MULTIPLE_INTERRUPTS_RECEIVED = "multiple_interrupts_received"
    ACCOUNT_BLOCKED_BY_PROVIDER = "account_blocked_by_provider"
    CLUSTER_UNSUPPORTED_VERSION_UPDATE = "cluster_unsupported_version_update"
    CONTEXT_UNSUPPORTED_PARAMETER_VALUE = "context_unsupported_parameter_value"


class TerraformError(CommandError):
    """Classified failure of a Terraform command."""

    def __init__(
        self,
        kind: TerraformErrorKind,
        message_safe: str,
        full_details: str | None = None,
        env_vars: list[tuple[str, str]] | None = None,
    ) -> None:
        super().__init__(message_safe, full_details, env_vars)
        self.kind = kind


HELM_ERROR_KINDS: dict[HelmErrorKind, ErrorKind] = {
    HelmErrorKind.TIMEOUT: ErrorKind.HELM_DEPLOY_TIMEOUT,
    HelmErrorKind.RELEASE_LOCKED: ErrorKind.HELM_CHARTS_UPGRADE_ERROR,
    HelmErrorKind.CANNOT_ROLLBACK: ErrorKind.HELM_CHARTS_UPGRADE_ERROR,
    HelmErrorKind.INVALID_KUBECONFIG: ErrorKind.KUBECONFIG_FILE_DO_NOT_PERMIT_TO_CONNECT_TO_K8S_CLUSTER,
}

# Unclassified (UNKNOWN) failures fall back to the pipeline-level kind.
TERRAFORM_ERROR_KINDS: dict[TerraformErrorKind, ErrorKind] = {
    TerraformErrorKind.INIT: ErrorKind.TERRAFORM_INIT_ERROR,
    TerraformErrorKind.VALIDATE: ErrorKind.TERRAFORM_VALIDATE_ERROR,
    TerraformErrorKind.PLAN: ErrorKind.TERRAFORM_PLAN_ERROR,
    TerraformErrorKind.APPLY: ErrorKind.TERRAFORM_APPLY_ERROR,
    TerraformErrorKind.DESTROY: ErrorKind.TERRAFORM_DESTROY_ERROR,
    TerraformErrorKind.STATE_LIST: ErrorKind.TERRAFORM_STATELIST_ERROR,
    TerraformErrorKind.CONFIG_FILE_INVALID_CONTENT: ErrorKind.TERRAFORM_CONFIG_FILE_INVALID_CONTENT,
    TerraformErrorKind.CANNOT_DELETE_LOCK_FILE: ErrorKind.TERRAFORM_CANNOT_DELETE_LOCK_FILE,
    TerraformErrorKind.STATE_LOCKED: ErrorKind.TERRAFORM_STATE_LOCKED,
    TerraformErrorKind.QUOTAS_REACHED: ErrorKind.TERRAFORM_CLOUD_PROVIDER_QUOTAS_REACHED,
    TerraformErrorKind.ACTIVATION_REQUIRED: ErrorKind.TERRAFORM_CLOUD_PROVIDER_ACTIVATION_REQUIRED,
    TerraformErrorKind.INVALID_CREDENTIALS: ErrorKind.TERRAFORM_INVALID_CREDENTIALS,
    TerraformErrorKind.SERVICE_NOT_ACTIVATED_OPT_IN_REQUIRED: (
        ErrorKind.TERRAFORM_SERVICE_NOT_ACTIVATED_OPT_IN_REQUIRED
    ),
    TerraformErrorKind.NOT_ENOUGH_PERMISSIONS: ErrorKind.TERRAFORM_NOT_ENOUGH_PERMISSIONS,
    TerraformErrorKind.WAITING_TIMEOUT_RESOURCE: ErrorKind.TERRAFORM_WAITING_TIMEOUT_RESOURCE,
    TerraformErrorKind.ALREADY_EXISTING_RESOURCE: ErrorKind.TERRAFORM_ALREADY_EXISTING_RESOURCE,
    TerraformErrorKind.WRONG_STATE: ErrorKind.TERRAFORM_WRONG_STATE,
    TerraformErrorKind.RESOURCE_DEPENDENCY_VIOLATION: ErrorKind.TERRAFORM_RESOURCE_DEPENDENCY_VIOLATION,
    TerraformErrorKind.INSTANCE_TYPE_DOESNT_EXIST: ErrorKind.TERRAFORM_INSTANCE_TYPE_DOESNT_EXIST,
    TerraformErrorKind.INSTANCE_VOLUME_CANNOT_BE_REDUCED: (
        ErrorKind.TERRAFORM_INSTANCE_VOLUME_CANNOT_BE_REDUCED
    ),
    TerraformErrorKind.INVALID_CIDR_BLOCK: ErrorKind.TERRAFORM_INVALID_CIDR_BLOCK,
    TerraformErrorKind.MULTIPLE_INTERRUPTS_RECEIVED: ErrorKind.TERRAFORM_MULTIPLE_INTERRUPTS_RECEIVED,
    TerraformErrorKind.ACCOUNT_BLOCKED_BY_PROVIDER: ErrorKind.TERRAFORM_ACCOUNT_BLOCKED_BY_PROVIDER,
    TerraformErrorKind.CLUSTER_UNSUPPORTED_VERSION_UPDATE: (
        ErrorKind.TERRAFORM_CLUSTER_UNSUPPORTED_VERSION_UPDATE
    ),
    TerraformErrorKind.CONTEXT_UNSUPPORTED_PARAMETER_VALUE: (
        ErrorKind.TERRAFORM_CONTEXT_UNSUPPORTED_PARAMETER_VALUE
    ),
}

_TERRAFORM_HINTS: dict[TerraformErrorKind, str] = {
    TerraformErrorKind.STATE_LOCKED: (
        "Another operation is holding the Terraform state lock. "
        "Wait for it to finish, then retry."
    ),
    TerraformErrorKind.QUOTAS_REACHED: (
        "Your cloud provider account reached one of its quotas. "
        "Request a quota increase from your cloud provider."
    ),
    TerraformErrorKind.INVALID_CREDENTIALS: "Check the credentials configured for your cloud provider.",
    TerraformErrorKind.NOT_ENOUGH_PERMISSIONS: (
        "The credentials configured for your cloud provider lack the required permissions."
    ),
    TerraformErrorKind.INSTANCE_VOLUME_CANNOT_BE_REDUCED: "A volume size can only be increased.",
}


class EngineError(Exception):
    """Categorized engine failure.

    ``user_log_message`` is pre-approved for end users. ``underlying_error``
    keeps the original collaborator failure for internal troubleshooting.
    """

    def __init__(
        self,
        tag: ErrorKind,
        event_details: EventDetails,
        user_log_message: str,
        underlying_error: CommandError | None = None,
        link: str | None = None,
        hint_message: str | None = None,
    ) -> None:
        super().__init__(user_log_message)
        self.tag = tag
        self.event_details = event_details
        self.user_log_message = user_log_message
        self.underlying_error = underlying_error
        self.link = link
        self.hint_message = hint_message

    def __repr__(self) -> str:
        return f"EngineError(tag={self.tag.name}, message={self.user_log_message!r})"

    def flattened(self) -> EngineError:
        """Same error, with the underlying error reduced to message and details."""
        return EngineError(
            tag=self.tag,
            event_details=self.event_details,
            user_log_message=self.user_log_message,
            underlying_error=self.underlying_error.flattened() if self.underlying_error else None,
            link=self.link,
            hint_message=self.hint_message,
        )

    # ------------------------------------------------------------------
    # Generic
    # ------------------------------------------------------------------

    @classmethod
    def new_unknown(
        cls,
        event_details: EventDetails,
        user_log_message: str,
        underlying_error: CommandError | None = None,
        hint_message: str | None = None,
    ) -> EngineError:
        return cls(ErrorKind.UNKNOWN, event_details, user_log_message, underlying_error, None, hint_message)

    @classmethod
    def new_invalid_engine_payload(
        cls, event_details: EventDetails, message: str, raw_error: CommandError | None = None
    ) -> EngineError:
        return cls(
            ErrorKind.INVALID_ENGINE_PAYLOAD,
            event_details,
            f"Engine payload is invalid: {message}",
            raw_error,
        )

    @classmethod
    def new_cannot_get_workspace_directory(
        cls, event_details: EventDetails, raw_error: CommandError
    ) -> EngineError:
        return cls(
            ErrorKind.CANNOT_GET_WORKSPACE_DIRECTORY,
            event_details,
            "Error while trying to get workspace directory.",
            raw_error,
        )

    @classmethod
    def new_cannot_copy_files_from_one_directory_to_another(
        cls, event_details: EventDetails, from_dir: str, to_dir: str, raw_error: CommandError
    ) -> EngineError:
        return cls(
            ErrorKind.CANNOT_COPY_FILES_FROM_DIRECTORY_TO_DIRECTORY,
            event_details,
            f"Error while trying to copy all files from `{from_dir}` to `{to_dir}`.",
            raw_error,
        )

    @classmethod
    def new_cannot_parse_string(
        cls, event_details: EventDetails, value: str, raw_error: CommandError
    ) -> EngineError:
        return cls(
            ErrorKind.CANNOT_PARSE_STRING,
            event_details,
            f"Error while trying to parse `{value}`.",
            raw_error,
        )

    @classmethod
    def new_version_number_parsing_error(
        cls, event_details: EventDetails, version: str, raw_error: CommandError
    ) -> EngineError:
        return cls(
            ErrorKind.VERSION_NUMBER_PARSING_ERROR,
            event_details,
            f"Error while trying to parse `{version}` to a version number.",
            raw_error,
        )

    @classmethod
    def new_unsupported_version_error(
        cls, event_details: EventDetails, product_name: str, version: str
    ) -> EngineError:
        return cls(
            ErrorKind.UNSUPPORTED_VERSION,
            event_details,
            f"Error, version `{version}` is not supported for `{product_name}`.",
        )

    @classmethod
    def new_task_cancelled(cls, event_details: EventDetails) -> EngineError:
        return cls(ErrorKind.TASK_CANCELLED, event_details, "Task cancelled by user.")

    # ------------------------------------------------------------------
    # Kubernetes
    # ------------------------------------------------------------------

    @classmethod
    def new_k8s_create_namespace(
        cls, event_details: EventDetails, namespace: str, raw_error: CommandError
    ) -> EngineError:
        return cls(
            ErrorKind.K8S_CANNOT_CREATE_NAMESPACE,
            event_details,
            f"Error while trying to create Kubernetes namespace `{namespace}`.",
            raw_error,
        )

    @classmethod
    def new_k8s_pod_not_ready(
        cls, event_details: EventDetails, selector: str, namespace: str, raw_error: CommandError | None
    ) -> EngineError:
        return cls(
            ErrorKind.K8S_POD_IS_NOT_READY,
            event_details,
            f"Pods with selector `{selector}` in namespace `{namespace}` are not ready.",
            raw_error,
        )

    @classmethod
    def new_k8s_service_issue(cls, event_details: EventDetails, raw_error: CommandError | None) -> EngineError:
        return cls(
            ErrorKind.K8S_SERVICE_ERROR,
            event_details,
            "Error, something went wrong with a Kubernetes service.",
            raw_error,
        )

    @classmethod
    def new_k8s_scale_replicas(
        cls,
        event_details: EventDetails,
        selector: str,
        namespace: str,
        replicas: int,
        raw_error: CommandError,
    ) -> EngineError:
        return cls(
            ErrorKind.K8S_SCALE_REPLICAS,
            event_details,
            f"Error while scaling replicas to {replicas} for selector `{selector}` "
            f"in namespace `{namespace}`.",
            raw_error,
        )

    @classmethod
    def new_k8s_get_logs_error(
        cls, event_details: EventDetails, selector: str, namespace: str, raw_error: CommandError
    ) -> EngineError:
        return cls(
            ErrorKind.K8S_GET_LOGS,
            event_details,
            f"Error, unable to retrieve logs for pods with selector `{selector}` "
            f"in namespace `{namespace}`.",
            raw_error,
        )

    @classmethod
    def new_k8s_cannot_get_pods(cls, event_details: EventDetails, raw_error: CommandError) -> EngineError:
        return cls(ErrorKind.K8S_CANNOT_GET_PODS, event_details, "Error, cannot get pods.", raw_error)

    @classmethod
    def new_k8s_get_json_events(
        cls, event_details: EventDetails, namespace: str, raw_error: CommandError
    ) -> EngineError:
        return cls(
            ErrorKind.K8S_GET_EVENTS,
            event_details,
            f"Error, unable to retrieve events in namespace `{namespace}`.",
            raw_error,
        )

    @classmethod
    def new_k8s_cannot_get_pvcs(
        cls, event_details: EventDetails, namespace: str, raw_error: CommandError
    ) -> EngineError:
        return cls(
            ErrorKind.K8S_CANNOT_GET_PVCS,
            event_details,
            f"Error, cannot get PVCs in namespace `{namespace}`.",
            raw_error,
        )

    @classmethod
    def new_k8s_cannot_get_statefulset(
        cls, event_details: EventDetails, namespace: str, selector: str, raw_error: CommandError
    ) -> EngineError:
        return cls(
            ErrorKind.K8S_CANNOT_GET_STATEFULSET,
            event_details,
            f"Error, cannot get statefulset with selector `{selector}` in namespace `{namespace}`.",
            raw_error,
        )

    @classmethod
    def new_service_missing_storage(cls, event_details: EventDetails, service_id: UUID) -> EngineError:
        return cls(
            ErrorKind.SERVICE_MISSING_STORAGE,
            event_details,
            f"Service `{service_id}` should have exactly one bound storage.",
        )

    # ------------------------------------------------------------------
    # Helm
    # ------------------------------------------------------------------

    @classmethod
    def new_helm_error(cls, event_details: EventDetails, error: HelmError) -> EngineError:
        """Wrap a Helm failure; the classified kind wins over the action."""
        tag = HELM_ERROR_KINDS.get(error.kind)
        if tag is None:
            tag = (
                ErrorKind.HELM_CHART_UNINSTALL_ERROR
                if error.action == "uninstall"
                else ErrorKind.HELM_CHARTS_UPGRADE_ERROR
            )

        hint = None
        if error.kind is HelmErrorKind.TIMEOUT:
            hint = (
                "The release did not become ready in time. Check the application logs, "
                "its health checks and the resources it requests."
            )

        return cls(
            tag,
            event_details,
            f"Helm error while trying to {error.action} release `{error.release}`.",
            error,
            hint_message=hint,
        )

    # ------------------------------------------------------------------
    # Terraform
    # ------------------------------------------------------------------

    @classmethod
    def _from_terraform(
        cls, event_details: EventDetails, error: CommandError, fallback: ErrorKind, message: str
    ) -> EngineError:
        tag = fallback
        hint = None
        if isinstance(error, TerraformError):
            tag = TERRAFORM_ERROR_KINDS.get(error.kind, fallback)
            hint = _TERRAFORM_HINTS.get(error.kind)
        return cls(tag, event_details, message, error, hint_message=hint)

    @classmethod
    def new_terraform_error_while_executing_pipeline(
        cls, event_details: EventDetails, error: CommandError
    ) -> EngineError:
        return cls._from_terraform(
            event_details,
            error,
            ErrorKind.TERRAFORM_ERROR_WHILE_EXECUTING_PIPELINE,
            "Error while executing Terraform pipeline.",
        )

    @classmethod
    def new_terraform_error_while_executing_destroy_pipeline(
        cls, event_details: EventDetails, error: CommandError
    ) -> EngineError:
        return cls._from_terraform(
            event_details,
            error,
            ErrorKind.TERRAFORM_ERROR_WHILE_EXECUTING_DESTROY_PIPELINE,
            "Error while executing Terraform destroy pipeline.",
        )

    @classmethod
    def new_terraform_database_config_mismatch(
        cls, event_details: EventDetails, raw_error: CommandError
    ) -> EngineError:
        return cls(
            ErrorKind.TERRAFORM_CONFIG_MISMATCH,
            event_details,
            "Database configuration generated by Terraform cannot be read.",
            raw_error,
        )

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    @classmethod
    def new_database_failed_to_start_after_several_retries(
        cls,
        event_details: EventDetails,
        service_id: str,
        service_type: str,
        raw_error: CommandError | None,
    ) -> EngineError:
        return cls(
            ErrorKind.DATABASE_FAILED_TO_START_AFTER_SEVERAL_RETRIES,
            event_details,
            f"Database `{service_id}` ({service_type}) failed to start after several retries.",
            raw_error,
        )

    @classmethod
    def new_database_error(cls, event_details: EventDetails, message: str) -> EngineError:
        return cls(ErrorKind.DATABASE_ERROR, event_details, message)
