from abc import ABC, abstractmethod
from typing import Dict, Iterator, List


class LLMClient(ABC):
    @abstractmethod
    def generate(self, messages: List[Dict]) -> str:
        """Generate assistant text from chat messages"""
        pass

    @abstractmethod
    def stream(self, messages: List[Dict]) -> Iterator[str]:
        """Yield assistant text deltas as the model produces them"""
        pass
