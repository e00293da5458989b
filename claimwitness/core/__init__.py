"""ClaimWitness core: model, crypto, selection, registry, verification."""
