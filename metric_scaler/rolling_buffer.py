from collections import deque

from .config import MAX_METRICS_COUNT


class RollingBuffer:
    """Fixed-capacity FIFO of utilization samples, oldest evicted first."""

    def __init__(self, capacity=MAX_METRICS_COUNT):
        self.capacity = capacity
        self.data = deque(maxlen=capacity)

    def push(self, sample):
        self.data.append(float(sample))

    def mean(self):
        # Callers must guard against an empty buffer
        samples = tuple(self.data)
        return sum(samples) / len(samples)

    def __len__(self):
        return len(self.data)

    def __iter__(self):
        return iter(self.data)
