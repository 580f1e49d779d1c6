"""HoloNet - hand-gesture control for a holographic globe."""

__version__ = "0.2.0"

from holonet.hands import DetectionFrame, Hand, HandRoles, Landmark, classify_hands
from holonet.gestures import GestureReading
from holonet.controller import ControlMode, ControlTarget, GrabHysteresis, ManipulationController
from holonet.elimination import EliminationSequencer, EliminationStage, StageTransition
from holonet.effects import Cue, EffectDispatcher, EffectRequest
from holonet.regions import Region, region_for_yaw
from holonet.config import HoloConfig
from holonet.pipeline import FrameSnapshot, InteractionPipeline
from holonet.recorder import FramePlayer, FrameRecorder
from holonet.metrics import MetricsCollector
