"""Reserved keys, sentinels and configuration element names."""

import os

SYNAPSE_NAMESPACE = "http://ws.apache.org/ns/synapse"

# Carrier-level header / message property keys shared between hops
FLOW_ID_KEY = "ainoFlowId"
OPERATION_KEY = "ainoOperationName"

# Application key used for the implicit direction
ESB_APPLICATION_KEY = "esb"

# Fallback keys registered on first use
UNKNOWN_APPLICATION_KEY = "unknownApplication"
UNKNOWN_APPLICATION_NAME = "Unknown Application"
UNKNOWN_OPERATION_KEY = "unknownOperation"
UNKNOWN_OPERATION_NAME = "Unknown Operation"
UNKNOWN_PAYLOAD_TYPE_KEY = "unknownPayloadType"
UNKNOWN_PAYLOAD_TYPE_NAME = "Unknown Payload Type"
UNKNOWN_ID_TYPE_KEY = "unknownIdType"
UNKNOWN_ID_TYPE_NAME = "Unknown Id Type"

# Transaction fields that custom properties may not shadow
DATA_FIELDS = frozenset(
    {
        "from",
        "to",
        "message",
        "status",
        "timestamp",
        "operation",
        "ids",
        "flowId",
        "payloadType",
    }
)

# Message properties copied to metadata on failure: property -> metadata key
ERROR_PROPERTIES = (
    ("ERROR_CODE", "errorCode"),
    ("ERROR_MESSAGE", "errorMessage"),
    ("ERROR_DETAIL", "errorDetails"),
    ("ERROR_EXCEPTION", "errorException"),
)

DEFAULT_SEPARATOR = ","
MULTI_ID_GROUP_DELIMITER = "||"
MULTI_ID_TYPE_DELIMITER = "="
MULTI_ID_VALUE_DELIMITER = ","

# <ainoLog> element model
ROOT_TAG_NAME = "ainoLog"
OPERATION_TAG_NAME = "operation"
MESSAGE_TAG_NAME = "message"
FROM_TAG_NAME = "from"
TO_TAG_NAME = "to"
PAYLOAD_TYPE_TAG_NAME = "payloadType"
IDS_TAG_NAME = "ids"
MULTI_IDS_TAG_NAME = "multiids"
PROPERTY_TAG_NAME = "property"

STATUS_ATT = "status"
STATUS_EXPRESSION_ATT = "statusExpression"
SEPARATOR_ATT = "separator"
KEY_ATT = "key"
VALUE_ATT = "value"
NAME_ATT = "name"
EXPRESSION_ATT = "expression"
APPLICATION_KEY_ATT = "applicationKey"
TYPE_KEY_ATT = "typeKey"


def qname(local_name: str) -> str:
    """Return the Clark-notation name of a Synapse element."""
    return f"{{{SYNAPSE_NAMESPACE}}}{local_name}"


ESB_DIR = os.getenv("CARBON_HOME") or os.getcwd()
ESB_CONFIG_DIR = os.path.join(ESB_DIR, "repository", "conf")
AGENT_CONFIG_FILE_NAME = "ainoLogMediatorConfig.xml"
DEFAULT_AGENT_CONFIG_PATH = os.path.join(ESB_CONFIG_DIR, AGENT_CONFIG_FILE_NAME)
DEFAULT_AXIS2_CONFIG_PATH = os.path.join(ESB_CONFIG_DIR, "axis2", "axis2.xml")
SERVER_NAME_XPATH = "/axisconfig/parameter[@name = 'SynapseConfig.ServerName']/text()"
