"""Generation of the custom resource definition manifests with controller-gen."""

from __future__ import annotations

import argparse
import logging
import os
import subprocess
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

log = logging.getLogger(__name__)


class CRDGenerationError(Exception):
    """Raised when a manifest cannot be generated."""


@dataclass(frozen=True)
class CRDName:
    """The singular and plural names of a custom resource."""

    singular: str
    plural: str


@dataclass
class CRDGenerator:
    """How to generate the manifests of one API package."""

    controller_gen_opts: str
    yaml_dir: str
    crd_names: list[CRDName]
    crd_api_group: str
    controller_path: str
    customize_yaml: Optional[Callable[["CRDGenerator"], None]] = field(default=None)

    def command(self, controller_gen: str) -> list[str]:
        """Return the controller-gen command line for this generator."""
        output_dir = os.path.abspath(self.yaml_dir)
        return [
            controller_gen,
            self.controller_gen_opts,
            "paths=.",
            "output:crd:dir=" + output_dir,
        ]

    def generate_yaml_manifests(self, controller_gen: str) -> None:
        """Run controller-gen in the controller path, then apply any customisation."""
        command = self.command(controller_gen)
        workdir = os.path.abspath(self.controller_path)
        log.info("running binary: %s", controller_gen)
        try:
            subprocess.run(command, cwd=workdir, check=True)
        except (OSError, subprocess.CalledProcessError) as error:
            log.error("failed to run command %s", error)
            raise CRDGenerationError(str(error)) from error

        if self.customize_yaml is None:
            return
        try:
            self.customize_yaml(self)
        except Exception as error:  # noqa: BLE001 - wrapped with context
            raise CRDGenerationError(f"customizing YAML: {error}") from error


def default_generators() -> list[CRDGenerator]:
    """Return the generators for the khcheck, khjob and khstate resources."""
    return [
        CRDGenerator(
            controller_gen_opts="crd:crdVersions=v1,preserveUnknownFields=false",
            yaml_dir="./generated",
            crd_names=[CRDName("khcheck", "khchecks")],
            crd_api_group="comcast.github.io",
            controller_path="../pkg/apis/khcheck/v1",
        ),
        CRDGenerator(
            controller_gen_opts="crd:crdVersions=v1,preserveUnknownFields=false",
            yaml_dir="./generated",
            crd_names=[CRDName("khjob", "khjobs")],
            crd_api_group="comcast.github.io",
            controller_path="../pkg/apis/khjob/v1",
        ),
        CRDGenerator(
            controller_gen_opts="crd:crdVersions=v1",
            yaml_dir="./generated",
            crd_names=[CRDName("khstate", "khstates")],
            crd_api_group="comcast.github.io",
            controller_path="../pkg/apis/khstate/v1",
        ),
    ]


def main(argv: Sequence[str] | None = None) -> int:
    """Generate every manifest; return 1 on the first failure."""
    parser = argparse.ArgumentParser(description="Generate CRD manifests.")
    parser.add_argument(
        "-controller-gen",
        "--controller-gen",
        dest="controller_gen",
        default="controller-gen",
        help="controller-gen binary path",
    )
    parser.add_argument(
        "-gojsontoyaml",
        "--gojsontoyaml",
        dest="gojsontoyaml",
        default="gojsontoyaml",
        help="gojsontoyaml binary path",
    )
    args = parser.parse_args(argv)

    for generator in default_generators():
        try:
            generator.generate_yaml_manifests(args.controller_gen)
        except CRDGenerationError as error:
            log.error("generating YAML manifests: %s", error)
            return 1
    return 0