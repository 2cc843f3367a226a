CRD_GROUP = "shopvac.io"
CRD_VERSION = "v1"
CRD_API_VERSION = f"{CRD_GROUP}/{CRD_VERSION}"
CRD_KIND_PODCLEANER = "PodCleaner"
CRD_PLURAL_PODCLEANER = "podcleaners"

SERVICE_ACCOUNT_NAME = "shopvac"
ROLE_BINDING_NAME = "shopvac-delete-rb"
POD_DELETION_ROLE_NAME = "shopvac-pod-deletion-role"
CRONJOB_NAME_SUFFIX = "-clean-job"

MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
MANAGED_BY_VALUE = "shopvac-controller"
PODCLEANER_LABEL = f"{CRD_GROUP}/podcleaner"
