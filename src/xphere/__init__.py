__version__ = "0.3.0"

__all__ = [
    "__version__",
    # Configuration
    "ClientConfig",
    "DEFAULT_ENDPOINTS",
    "load_private_key",
    # Errors
    "XphereError",
    "ValidationError",
    "RpcError",
    "NetworkTimeout",
    "MalformedResponse",
    "UpstreamError",
    "TransportFailure",
    "ConditionNotMet",
    "ConsensusFailure",
    "RetryLimitExceeded",
    "SubmissionCancelled",
    # Models
    "KeyPair",
    "RpcResponse",
    "DispatchResult",
    "RoundSnapshot",
    "PeerList",
    "ContractCode",
    "parse_code",
    # Codec and identity
    "enc",
    "sign",
    # Network
    "Dispatcher",
    "Rpc",
    "fee_for",
    "choose_broadcast_result",
    "signed_request",
    "signed_transaction",
    "simple_request",
    "submit_transaction",
    "publish_code",
    "SubmissionResult",
    "SubmissionState",
]

from .config import DEFAULT_ENDPOINTS, ClientConfig, load_private_key
from .errors import (
    ConditionNotMet,
    ConsensusFailure,
    MalformedResponse,
    NetworkTimeout,
    RetryLimitExceeded,
    RpcError,
    SubmissionCancelled,
    TransportFailure,
    UpstreamError,
    ValidationError,
    XphereError,
)
from .models import ContractCode, DispatchResult, KeyPair, PeerList, RoundSnapshot, RpcResponse, parse_code
from .sigil import enc, sign
from .pneuma.dispatch import Dispatcher
from .pneuma.rpc import Rpc, choose_broadcast_result, fee_for
from .pneuma.tx import (
    SubmissionResult,
    SubmissionState,
    publish_code,
    signed_request,
    signed_transaction,
    simple_request,
    submit_transaction,
)
