from dataclasses import dataclass
from typing import Dict, List
from migrator.core.workflow import TargetKind
from migrator.generators.base import BaseEmitter
from migrator.generators.endpoint_gen.emitter import EndpointEmitter
from migrator.generators.job_gen.emitter import JobEmitter
from migrator.generators.mobile_gen.emitter import MobileUIEmitter
from migrator.generators.ui_gen.emitter import UIEmitter


@dataclass
class EmitterRegistry:
    mapping: Dict[TargetKind, BaseEmitter]

    def get(self, target: TargetKind) -> BaseEmitter:
        return self.mapping[target]

    def targets(self) -> List[TargetKind]:
        return list(self.mapping)

    @staticmethod
    def default() -> "EmitterRegistry":
        return EmitterRegistry(mapping={
            TargetKind.ENDPOINT: EndpointEmitter(),
            TargetKind.JOB: JobEmitter(),
            TargetKind.UI: UIEmitter(),
            TargetKind.MOBILE_UI: MobileUIEmitter(),
        })
