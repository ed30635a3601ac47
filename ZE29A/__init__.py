"""Driver for the Winsen ZE29A-C2H5OH breath-alcohol module (9-byte UART protocol)."""

from .ze29a_errors import (
    SensorProtocolError,
    NotConnected,
    TransportError,
    MalformedError,
    ChecksumError,
    NoResponse,
    PartialResponse,
    UnexpectedOpcode,
    InvalidStateTransition,
    OutOfRange,
)
from .ze29a_frame import Frame, encode, validate, calculate_checksum
from .ze29a_state import SensorState, AlarmLevel, MeasurementResult, ThresholdPair, SensorStateModel
from .ze29a_reader import FrameReader
from .ze29a_core import ZE29ASensor
from .ze29a_poller import PollingController, PollOutcome
