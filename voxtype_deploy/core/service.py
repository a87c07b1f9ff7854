"""
Service descriptor generation.

Emits systemd user-service descriptors for the resolved deployment. The
descriptor states ordering requirements (graphical session, audio server);
the supervisor enforces them.
"""

from typing import List, Optional

from .options import OptionsTree
from .types import ActivationDependencies, RestartPolicy, ServiceDescriptor, WrappedExecutableRef

GRAPHICAL_SESSION = "graphical-session.target"
AUDIO_SERVICES = ("pipewire.service", "pipewire-pulse.service")
RESTART_DELAY_SECS = 5
UNIT_HEADER = "# Generated by voxtype-deploy. Do not edit."


def generate_service_descriptor(tree: OptionsTree, wrapped: WrappedExecutableRef) -> Optional[ServiceDescriptor]:
    """
    Describe the VoxType daemon service.

    Args:
        tree: Validated options tree
        wrapped: Wrapped executable the service runs

    Returns:
        The descriptor, or None when service.enable is false
    """
    if not tree.service.enable:
        return None

    return ServiceDescriptor(
        name="voxtype",
        description="VoxType push-to-talk voice-to-text daemon",
        documentation="https://voxtype.io",
        exec_command=f"{wrapped.executable_path} daemon",
        restart_policy=RestartPolicy(mode="on-failure", delay_secs=RESTART_DELAY_SECS),
        activation_dependencies=ActivationDependencies(
            after=(GRAPHICAL_SESSION,) + AUDIO_SERVICES,
            part_of=(GRAPHICAL_SESSION,),
        ),
        enablement=(GRAPHICAL_SESSION,),
    )


def generate_ydotool_descriptor(tree: OptionsTree, ydotoold: str) -> Optional[ServiceDescriptor]:
    """
    Describe the ydotool daemon service needed by the ydotool typing backend.

    Args:
        tree: Validated options tree
        ydotoold: Path (or name) of the ydotoold executable

    Returns:
        The descriptor, or None when ydotool.enableDaemon is false
    """
    if not tree.ydotool.enable_daemon:
        return None

    return ServiceDescriptor(
        name="ydotoold",
        description="ydotool daemon for virtual input",
        documentation="man:ydotool(1)",
        exec_command=ydotoold,
        restart_policy=RestartPolicy(mode="on-failure", delay_secs=RESTART_DELAY_SECS),
        activation_dependencies=ActivationDependencies(
            after=(GRAPHICAL_SESSION,),
            part_of=(GRAPHICAL_SESSION,),
        ),
        enablement=(GRAPHICAL_SESSION,),
    )


def render_unit(descriptor: ServiceDescriptor) -> str:
    """Render a descriptor as systemd unit file text."""
    deps = descriptor.activation_dependencies
    unit: List[str] = [UNIT_HEADER, "[Unit]", f"Description={descriptor.description}"]
    if descriptor.documentation:
        unit.append(f"Documentation={descriptor.documentation}")
    if deps.part_of:
        unit.append(f"PartOf={' '.join(deps.part_of)}")
    if deps.after:
        unit.append(f"After={' '.join(deps.after)}")

    policy = descriptor.restart_policy
    service = [
        "[Service]",
        f"Type={descriptor.service_type}",
        f"ExecStart={descriptor.exec_command}",
        f"Restart={policy.mode}",
        f"RestartSec={policy.delay_secs}",
    ]

    sections = [unit, service]
    if descriptor.enablement:
        sections.append(["[Install]", f"WantedBy={' '.join(descriptor.enablement)}"])

    return "\n\n".join("\n".join(section) for section in sections) + "\n"
