class RiskManager:
    """Fixed per-slot sizing: each open slot gets an equal share of the realized balance."""
    def __init__(self, max_positions: int = 5):
        if max_positions <= 0:
            raise ValueError("max_positions must be positive")
        self.max_positions = max_positions

    def slot_size(self, total_balance: float) -> float:
        return max(0.0, total_balance / self.max_positions)

    @staticmethod
    def wallet_trading_balance(wallet_balance: float, margin_pct: float) -> float:
        """Exchange wallet balance minus a safety margin."""
        return wallet_balance - wallet_balance * margin_pct
