import torch


class MinibatchGenerator:
    """Endless stream of minibatch indices; reshuffles after every pass."""

    def __init__(self, n, bg, device=None, generator=None):
        self.n = n
        self.bg = bg
        self.device = device
        self.generator = generator
        self.idx = self._shuffle()  # Initial shuffle of indices
        self.current_batch = 0
        self.n_batches = (n + bg - 1) // bg

    def _shuffle(self):
        idx = torch.randperm(self.n, generator=self.generator)
        return idx if self.device is None else idx.to(self.device)

    def __iter__(self):
        return self

    def __next__(self):
        if self.current_batch >= self.n_batches:
            self.idx = self._shuffle()  # Reshuffle indices
            self.current_batch = 0

        start = self.current_batch * self.bg
        end = min((self.current_batch + 1) * self.bg, self.n)
        self.current_batch += 1
        return self.idx[start:end]
