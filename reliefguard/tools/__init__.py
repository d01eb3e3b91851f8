"""Authorization tools: balances, limits, fraud detection, risk, vendors"""
