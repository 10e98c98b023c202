# Package payments: client SumUp + webhook et diagnostics
