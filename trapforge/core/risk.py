"""Risk assessment of a generated artifact against the requested tiers."""

from ..data.models.deployment import (
    ComplexityTier,
    DeploymentRequest,
    GeneratedArtifact,
    RiskAssessment,
    RiskLevel,
    SecurityTier,
)

BASE_SCORE = 50
MIN_SCORE = 10
MAX_SCORE = 90

SECURITY_ADJUSTMENT = {
    SecurityTier.BASIC: 20,
    SecurityTier.PREMIUM: -10,
    SecurityTier.ENTERPRISE: -20,
}

COMPLEXITY_ADJUSTMENT = {
    ComplexityTier.SIMPLE: -15,
    ComplexityTier.MEDIUM: 0,
    ComplexityTier.ADVANCED: 10,
    ComplexityTier.ENTERPRISE: 15,
}


def risk_level(score: int) -> RiskLevel:
    if score < 30:
        return RiskLevel.LOW
    if score < 60:
        return RiskLevel.MEDIUM
    if score < 80:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def assess_risk(request: DeploymentRequest, artifact: GeneratedArtifact) -> RiskAssessment:
    """Score the deployment risk of ``artifact``; higher is riskier."""
    features = set(artifact.security_features)
    score = BASE_SCORE
    score += SECURITY_ADJUSTMENT[request.security]
    score += COMPLEXITY_ADJUSTMENT[request.complexity]
    if "Reentrancy Guard" in features:
        score -= 5
    score = max(MIN_SCORE, min(MAX_SCORE, score))

    vulnerabilities = []
    mitigations = []
    if "Reentrancy Guard" not in features:
        vulnerabilities.append("Value-moving calls are not guarded against re-entrancy")
        mitigations.append("Wrap external value transfers in a re-entrancy guard")
    if "Access Control" not in features:
        vulnerabilities.append("Administrative functions lack owner or role checks")
        mitigations.append("Restrict administrative functions to an owner or role")
    if "Emergency Pause" not in features:
        mitigations.append("Add an owner-controlled pause switch")
    if request.security == SecurityTier.BASIC:
        vulnerabilities.append("Basic security tier skips enhanced monitoring thresholds")
    if request.complexity in (ComplexityTier.ADVANCED, ComplexityTier.ENTERPRISE):
        vulnerabilities.append("Complex logic widens the attack surface")
        mitigations.append("Commission an external audit before holding significant value")
    if artifact.confidence < 0.9:
        mitigations.append("Review the generated source before relying on it")

    return RiskAssessment(
        level=risk_level(score),
        score=score,
        vulnerabilities=vulnerabilities,
        mitigations=mitigations,
    )
