"""
core/engine/state_machine.py

状态机引擎 - 校验实体的状态转换

实体的当前状态保存在数据库记录中，因此状态机本身是无状态的：
调用方传入当前状态与触发动作，引擎返回目标状态。
"""
from typing import Dict, List, Optional, Set
from dataclasses import dataclass, field
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StateTransition:
    """
    状态转换定义

    Attributes:
        from_state: 源状态
        to_state: 目标状态
        trigger: 触发动作
    """

    from_state: str
    to_state: str
    trigger: str


@dataclass
class StateMachineConfig:
    """
    状态机配置

    Attributes:
        name: 状态机名称
        states: 所有状态的列表
        transitions: 转换列表
        initial_state: 初始状态
        final_states: 终止状态
    """

    name: str
    states: List[str]
    transitions: List[StateTransition]
    initial_state: str
    final_states: Set[str] = field(default_factory=set)


class StateMachine:
    """
    状态机引擎

    Example:
        >>> machine = StateMachine(
        ...     StateMachineConfig(
        ...         name="Booking",
        ...         states=["Pending", "Confirmed"],
        ...         transitions=[StateTransition("Pending", "Confirmed", "approve")],
        ...         initial_state="Pending",
        ...     )
        ... )
        >>> machine.fire("Pending", "approve")
        'Confirmed'
    """

    def __init__(self, config: StateMachineConfig):
        self._config = config
        self._transition_map: Dict[str, Dict[str, StateTransition]] = {}

        # 构建转换映射: (from_state, trigger) -> transition
        for t in config.transitions:
            if t.from_state not in config.states or t.to_state not in config.states:
                raise ValueError(f"Unknown state in transition {t}")
            self._transition_map.setdefault(t.from_state, {})[t.trigger] = t

    @property
    def config(self) -> StateMachineConfig:
        """获取状态机配置"""
        return self._config

    def get_transition(self, current_state: str, trigger: str) -> Optional[StateTransition]:
        return self._transition_map.get(current_state, {}).get(trigger)

    def can_fire(self, current_state: str, trigger: str) -> bool:
        """检查当前状态下触发动作是否合法"""
        return self.get_transition(current_state, trigger) is not None

    def fire(self, current_state: str, trigger: str) -> Optional[str]:
        """
        执行状态转换

        Returns:
            目标状态；转换不合法时返回 None
        """
        transition = self.get_transition(current_state, trigger)
        if transition is None:
            logger.warning(
                f"[{self._config.name}] Invalid transition from {current_state} (trigger: {trigger})"
            )
            return None

        logger.info(
            f"[{self._config.name}] State transition: {current_state} -> {transition.to_state} (trigger: {trigger})"
        )
        return transition.to_state

    def available_triggers(self, current_state: str) -> List[str]:
        """获取当前状态下可用的触发动作"""
        return list(self._transition_map.get(current_state, {}).keys())

    def is_final(self, state: str) -> bool:
        return state in self._config.final_states


# 导出
__all__ = [
    "StateTransition",
    "StateMachineConfig",
    "StateMachine",
]
