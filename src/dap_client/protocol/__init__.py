from .codec import Reader
from .messages import (
    DAP_ERROR_URN_PREFIX,
    REPORT_ID_LENGTH,
    REPORT_MEDIA_TYPE,
    TASK_ID_LENGTH,
    HpkeCiphertext,
    HpkeConfig,
    HpkeConfigList,
    InputShareAad,
    PlaintextInputShare,
    ProtocolVersion,
    Report,
    ReportId,
    ReportMetadata,
    Role,
    TaskId,
    b64url_decode,
    b64url_encode,
    input_share_info,
)

__all__ = [
    "DAP_ERROR_URN_PREFIX",
    "REPORT_ID_LENGTH",
    "REPORT_MEDIA_TYPE",
    "TASK_ID_LENGTH",
    "HpkeCiphertext",
    "HpkeConfig",
    "HpkeConfigList",
    "InputShareAad",
    "PlaintextInputShare",
    "ProtocolVersion",
    "Reader",
    "Report",
    "ReportId",
    "ReportMetadata",
    "Role",
    "TaskId",
    "b64url_decode",
    "b64url_encode",
    "input_share_info",
]
