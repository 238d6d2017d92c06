"""
完成检测器

完成条件: 已处理箱子数 >= 箱子总数 且 没有活跃旅行者
条件首次满足时触发一次，之后直到重置都不再触发
"""

import logging


logger = logging.getLogger(__name__)


class CompletionDetector:
    """
    完成检测器

    Attributes:
        max_boxes: 箱子总数
        triggered: 是否已触发
    """

    def __init__(self, max_boxes: int):
        self.max_boxes = max_boxes
        self.triggered = False

    def is_complete(self, total_processed: int, active_travelers: int) -> bool:
        return total_processed >= self.max_boxes and active_travelers == 0

    def check(self, total_processed: int, active_travelers: int) -> bool:
        """
        检查是否应该触发结束

        Args:
            total_processed: 已处理箱子数
            active_travelers: 活跃旅行者数

        Returns:
            本次调用是否触发（每次重置后最多返回一次True）
        """
        if self.triggered:
            return False
        if not self.is_complete(total_processed, active_travelers):
            return False
        self.triggered = True
        logger.info(
            "所有箱子已处理（%d/%d），所有旅行者已返回",
            total_processed, self.max_boxes,
        )
        return True

    def reset(self, max_boxes: int = None):
        if max_boxes is not None:
            self.max_boxes = max_boxes
        self.triggered = False
