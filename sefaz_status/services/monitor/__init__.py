"""
Núcleo do monitor de disponibilidade SEFAZ.

Classificação de resultados de sondagem, agregação da matriz do portal
nacional, reconciliação e frescor dos dados.
"""

from .models import (
    Status,
    DocumentType,
    TransportError,
    ProbeOutcome,
    AvailabilityVerdict,
    ServiceStatusRecord,
    CHANNELS,
)
from .classifier import OutcomeClassifier, ClassifierConfig, classify
from .aggregator import MatrixRow, aggregate
from .reconciler import CriticalEndpoint, reconcile, reconcile_all
from .freshness import LatestRecordCache, is_stale, headline
from .errors import MonitorError, PortalLayoutError, PersistenceError

__all__ = [
    # Modelos
    'Status',
    'DocumentType',
    'TransportError',
    'ProbeOutcome',
    'AvailabilityVerdict',
    'ServiceStatusRecord',
    'CHANNELS',

    # Classificador
    'OutcomeClassifier',
    'ClassifierConfig',
    'classify',

    # Agregação e reconciliação
    'MatrixRow',
    'aggregate',
    'CriticalEndpoint',
    'reconcile',
    'reconcile_all',

    # Frescor
    'LatestRecordCache',
    'is_stale',
    'headline',

    # Erros
    'MonitorError',
    'PortalLayoutError',
    'PersistenceError',
]
