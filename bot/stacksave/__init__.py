"""StackSave - chat front-end for a DeFi staking contract"""
