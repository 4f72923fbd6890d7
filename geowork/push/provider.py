from typing import Dict


class PushProvider:
    def send(self, topic: str, title: str, body: str, data: Dict[str, str]) -> None:
        raise NotImplementedError
