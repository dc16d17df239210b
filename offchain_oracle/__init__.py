"""Offchain Rate Oracle: weighted consensus exchange rates from rate oracles."""
