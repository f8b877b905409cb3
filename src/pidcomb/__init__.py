"""Public package exports for TPC PID and V0/track combinatorics."""
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


from .calibration import DirectoryCalibrationStore, InMemoryCalibrationStore, Parametrization
from .combiner import PairingPolicy, iter_n_body_combinations, iter_pairs, resolve_selection_mode
from .composite import Sigma0Candidate, Sigma0Tables
from .exceptions import (
    CalibrationUnavailable,
    InvalidConfiguration,
    NotFound,
    PidCombError,
    SchemaMismatch,
)
from .histograms import Axis, CutFunnel, Histogram, HistogramRegistry
from .ivm import IvmCandidate, IvmSelector, PidSlot
from .models import (
    Collision,
    EventInput,
    IdentificationRecord,
    LambdaCuts,
    LorentzVector,
    MLThresholds,
    PairSelectionConfig,
    PhotonCuts,
    SelectionMode,
    Sigma0Cuts,
    Track,
    V0Candidate,
    V0Leg,
)
from .pairs import PairRecord, PairSign, SameEventPairTask
from .pid import Consumer, PidEvaluator, PidQa, PidToggle
from .response import DetectorResponse, ResponseConfig, load_detector_response
from .sigma0 import Sigma0Builder
from .species import Species

__all__ = [
    "Species",
    "Track",
    "V0Leg",
    "V0Candidate",
    "Collision",
    "EventInput",
    "LorentzVector",
    "IdentificationRecord",
    "SelectionMode",
    "PhotonCuts",
    "LambdaCuts",
    "Sigma0Cuts",
    "MLThresholds",
    "PairSelectionConfig",
    "Parametrization",
    "InMemoryCalibrationStore",
    "DirectoryCalibrationStore",
    "DetectorResponse",
    "ResponseConfig",
    "load_detector_response",
    "PidEvaluator",
    "PidQa",
    "PidToggle",
    "Consumer",
    "PairingPolicy",
    "iter_pairs",
    "iter_n_body_combinations",
    "resolve_selection_mode",
    "Sigma0Builder",
    "Sigma0Candidate",
    "Sigma0Tables",
    "SameEventPairTask",
    "PairRecord",
    "PairSign",
    "IvmSelector",
    "IvmCandidate",
    "PidSlot",
    "Axis",
    "Histogram",
    "HistogramRegistry",
    "CutFunnel",
    "PidCombError",
    "CalibrationUnavailable",
    "InvalidConfiguration",
    "SchemaMismatch",
    "NotFound",
]
