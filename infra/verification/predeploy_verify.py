#!/usr/bin/env python3
"""Pre-deploy verification of the synthesized platform template."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from infra.app import build_app
from infra.verification.template_audit import audit_platform_stack
from src.application.blueprints.platform_blueprint import EXPLICIT_POLICY_SID
from src.infrastructure.config import get_settings


def load_template(path: Path) -> dict[str, Any]:
    return json.loads(path.read_text(encoding='utf-8'))


def synthesize_template() -> dict[str, Any]:
    settings = get_settings()
    assembly = build_app().synth()
    return assembly.get_stack_by_name(settings.stack_name).template


def parse_route(value: str) -> tuple[str, str]:
    method, _, path = value.partition(' ')
    if not method or not path.startswith('/'):
        raise argparse.ArgumentTypeError(f'Route must look like "POST /action", got {value!r}')
    return method.upper(), path.lstrip('/')


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description='Verify the synthesized platform template before deploy')
    parser.add_argument('--template', type=Path, help='CloudFormation template JSON (default: synthesize in-process)')
    parser.add_argument('--policy-sid', default=EXPLICIT_POLICY_SID)
    parser.add_argument('--route', type=parse_route, default=('POST', 'action'))
    parser.add_argument('--fleet-min', type=int, default=1)
    parser.add_argument('--fleet-max', type=int, default=3)
    parser.add_argument('--no-fleet', action='store_true', help='Skip the fleet capacity audit')
    args = parser.parse_args(argv)

    template = load_template(args.template) if args.template else synthesize_template()
    method, path = args.route
    findings = audit_platform_stack(
        template,
        policy_sid=args.policy_sid,
        route_path=path,
        route_method=method,
        fleet_capacity=None if args.no_fleet else (args.fleet_min, args.fleet_max),
    )

    for finding in findings:
        print(finding)
    if findings:
        print(f'Pre-deploy verification failed: {len(findings)} finding(s).')
        return 1

    print('Pre-deploy verification passed.')
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
