"""Room step machine for validating step transitions."""

from live_room.schemas import RoomStep


class RoomStepMachine:
    """State machine for room lifecycle steps.

    Step flow with triggers:
    - WELCOME -> STREAMER_PREPARE (go live) | VIEWER_PREPARE (join a stream)
    - STREAMER_PREPARE -> STREAM (stream created, connected, camera published) | WELCOME
    - VIEWER_PREPARE -> STREAM (joined and connected) | WELCOME
    - STREAM -> WELCOME (leave, or connection lost)

    A step may always be re-set to itself; there is no terminal step.
    """

    TRANSITIONS: dict[RoomStep, set[RoomStep]] = {
        RoomStep.WELCOME: {
            RoomStep.STREAMER_PREPARE,
            RoomStep.VIEWER_PREPARE,
        },
        RoomStep.STREAMER_PREPARE: {
            RoomStep.STREAM,
            RoomStep.WELCOME,
        },
        RoomStep.VIEWER_PREPARE: {
            RoomStep.STREAM,
            RoomStep.WELCOME,
        },
        RoomStep.STREAM: {RoomStep.WELCOME},
    }

    @classmethod
    def can_transition(cls, current: RoomStep, new: RoomStep) -> bool:
        """Check if step transition is valid.

        Args:
            current: Current room step
            new: Target step

        Returns:
            True if transition is valid, False otherwise
        """
        if current == new:
            return True
        return new in cls.TRANSITIONS.get(current, set())

    @classmethod
    def get_valid_transitions(cls, step: RoomStep) -> set[RoomStep]:
        return cls.TRANSITIONS.get(step, set())

    @classmethod
    def get_valid_sources(cls, target: RoomStep) -> set[RoomStep]:
        return {step for step, targets in cls.TRANSITIONS.items() if target in targets}
