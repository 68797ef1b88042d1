"""
Systemd adapter — enable and start services.

Services are the one piece of machine state the provisioner turns on
rather than installs; ``systemctl`` is idempotent for both operations.
"""

from __future__ import annotations

import logging

from osintvm.adapters.base import Adapter, ExecutionContext, require_operation
from osintvm.adapters.shell.process import binary_available, run_process
from osintvm.core.models.action import Receipt

logger = logging.getLogger(__name__)


class SystemdAdapter(Adapter):
    """Service management through systemctl.

    Action params:
        operation (str): One of 'enable', 'start', 'restart'.
        unit (str): Unit name, e.g. 'ssh' or 'resolvconf.service'.
        now (bool): For 'enable', also start the unit (default: True).
    """

    _VALID_OPS = {"enable", "start", "restart"}

    @property
    def name(self) -> str:
        return "systemd"

    def is_available(self) -> bool:
        return binary_available("systemctl")

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        ok, msg = require_operation(context, self._VALID_OPS)
        if not ok:
            return ok, msg
        if not context.action.params.get("unit"):
            return False, "Missing required param: 'unit'"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.action.params["operation"]
        unit = context.action.params["unit"]

        argv = ["systemctl", operation]
        if operation == "enable" and context.action.params.get("now", True):
            argv.append("--now")
        argv.append(unit)

        return run_process(
            context,
            self.name,
            argv,
            privileged=True,
            metadata={"unit": unit, "operation": operation},
        )
