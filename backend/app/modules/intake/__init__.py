"""Work-order intake: company resolution and prompt dispatch.

Pipeline stages for an incoming work-order PDF:
  Registry    — partner companies and sub-companies (two levels)
  Strategies  — one prompt-construction strategy per company
  Classifier  — hint / detector signal / marker rules -> company id
  Dispatcher  — classify, look up strategy, render prompt (no I/O)
"""
