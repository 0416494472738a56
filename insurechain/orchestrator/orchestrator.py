"""Policy/claim lifecycle orchestrator.

Sequences operations that span the credential service, the blob store and
the ledger. Each step of a composite operation is awaited before the next.

Partial-failure policy:
- issue_vc: the signed VC and its CID are the durable result. The optional
  on-chain policy step never fails the operation; its problems become
  warnings.
- submit_claim: fetching and verifying the referenced VC is best-effort
  unless strict verification is enabled. The claim transaction itself must
  succeed.
- insurer_action: the claim state is read from the ledger and checked
  against the transition table before any transaction is sent.
"""
import json
import logging
from typing import Any, Optional, Union

from insurechain.audit import AuditLogger, get_audit_logger
from insurechain.claims import (
    ClaimRecord,
    ClaimStatus,
    InsurerCommand,
    ZERO_ADDRESS,
    check_transition,
    parse_insurer_command,
)
from insurechain.config import STRICT_VC_VERIFICATION
from insurechain.core.exceptions import (
    CredentialVerificationFailed,
    DidCreationFailed,
    InsureChainError,
    MissingField,
    NotFoundError,
    ValidationError,
)
from insurechain.credentials import CredentialServiceHandle, get_credential_handle
from insurechain.intake import (
    IssuedCredential,
    PolicyRequest,
    PolicyRequestQueue,
    RequestStatus,
    build_policy_credential,
    get_request_queue,
)
from insurechain.ledger import (
    CLAIM_CONTRACT,
    IDENTITY_REGISTRY,
    POLICY_CONTRACT,
    EventFound,
    IdentityRole,
    LedgerGateway,
    get_ledger_gateway,
    to_address,
)
from insurechain.orchestrator.results import (
    ClaimSubmission,
    InsurerActionResult,
    IssueVCResult,
    PolicyIssuance,
    SoftWarning,
)
from insurechain.storage import BlobStore, get_blob_store

log = logging.getLogger(__name__)


def _missing(**fields: Any) -> list[str]:
    """Names of fields that are None or empty strings."""
    return [
        name for name, value in fields.items()
        if value is None or (isinstance(value, str) and not value.strip())
    ]


def _is_decimal(text: str) -> bool:
    """ASCII decimal digits only."""
    return text.isascii() and text.isdecimal()


def parse_uint(value: Union[int, str], name: str) -> int:
    """Parse a non-negative integer carried as int or decimal string.

    Raises:
        ValidationError: Not a non-negative integer.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a non-negative integer", code="INVALID_NUMBER")
    if isinstance(value, int):
        number = value
    else:
        text = str(value).strip()
        if not _is_decimal(text):
            raise ValidationError(f"{name} must be a non-negative integer", code="INVALID_NUMBER")
        number = int(text)
    if number < 0:
        raise ValidationError(f"{name} must be a non-negative integer", code="INVALID_NUMBER")
    return number


def parse_role(role: Union[int, str]) -> IdentityRole:
    """Accept a role as its uint8 value or its name (case-insensitive)."""
    if isinstance(role, str) and not _is_decimal(role.strip()):
        try:
            return IdentityRole[role.strip().upper()]
        except KeyError:
            raise ValidationError(f"Unknown role: {role}", code="INVALID_ROLE")
    try:
        return IdentityRole(int(role))
    except (TypeError, ValueError):
        raise ValidationError(f"Unknown role: {role}", code="INVALID_ROLE")


def policy_reference(vc: dict[str, Any], cid: str) -> str:
    """Key under which an issued VC is indexed.

    ``credentialSubject.policyId`` when the credential carries one, else
    the CID.
    """
    subject = vc.get("credentialSubject")
    if isinstance(subject, dict) and subject.get("policyId") not in (None, ""):
        return str(subject["policyId"])
    return cid


def _vc_issuer(vc: dict[str, Any]) -> Optional[str]:
    issuer = vc.get("issuer")
    if isinstance(issuer, dict):
        return issuer.get("id")
    return issuer


def _same_address(a: Any, b: str) -> bool:
    return isinstance(a, str) and a.lower() == b.lower()


def _subject_mismatch(vc: dict[str, Any], request: PolicyRequest) -> Optional[str]:
    """Why the VC's subject is not the patient who made ``request``, or None."""
    subject = vc.get("credentialSubject")
    subject = subject if isinstance(subject, dict) else {}
    if subject.get("id") != request.patient_did:
        return f"subject {subject.get('id')} is not requester {request.patient_did}"
    if "beneficiary" in subject and not _same_address(subject["beneficiary"], request.patient_address):
        return f"beneficiary {subject['beneficiary']} is not requester address {request.patient_address}"
    return None


class Orchestrator:
    """Composite policy and claim operations.

    Collaborators are injected; the module-level ``get_orchestrator`` wires
    the process-wide singletons.
    """

    def __init__(
        self,
        queue: PolicyRequestQueue,
        credentials: CredentialServiceHandle,
        blobs: BlobStore,
        ledger: LedgerGateway,
        audit: Optional[AuditLogger] = None,
        strict_vc_verification: bool = STRICT_VC_VERIFICATION,
    ):
        self.queue = queue
        self.credentials = credentials
        self.blobs = blobs
        self.ledger = ledger
        self.audit = audit or get_audit_logger()
        self.strict_vc_verification = strict_vc_verification

    # -------------------------------------------------------------------------
    # Identities and credentials
    # -------------------------------------------------------------------------

    async def create_did(self) -> str:
        service = await self.credentials.require_ready()
        try:
            did = await service.create_did()
        except InsureChainError as e:
            raise DidCreationFailed(f"DID creation failed: {e.message}")
        log.info(f"Created DID {did}")
        return did

    async def verify_vc(self, vc_jwt: Union[str, dict[str, Any]]) -> dict[str, Any]:
        if not vc_jwt:
            raise MissingField("vcJwt")
        service = await self.credentials.require_ready()
        return await service.verify(vc_jwt)

    async def issue_vc(
        self,
        credential: dict[str, Any],
        issuer_did: str,
        create_onchain: bool = False,
        insurer_private_key: Optional[str] = None,
        beneficiary: Optional[str] = None,
        coverage_amount: Optional[Union[int, str]] = None,
        request_id: Optional[Union[int, str]] = None,
    ) -> IssueVCResult:
        """Sign a credential, persist it, and optionally anchor a policy.

        With no ``credential`` but a ``request_id``, the credential is built
        from the queued request, and its address and coverage fill in any
        on-chain arguments left unset.

        Raises:
            MissingField: No credential (or request id) or no issuer DID.
            NotFoundError: ``request_id`` names no queued request.
            CredentialServiceInitializing / CredentialServiceFailed: The
                credential service is not ready.
            CredentialServiceError / BlobStoreError: Signing or persisting
                the VC failed; nothing was recorded.
        """
        missing = _missing(issuerDid=issuer_did)
        if not credential and _missing(requestId=request_id):
            missing.insert(0, "credential")
        if missing:
            raise MissingField(missing)

        if not credential:
            request = self.queue.get(parse_uint(request_id, "requestId"))
            if request is None:
                raise NotFoundError(f"Policy request not found: {request_id}")
            insurer_account = None
            if insurer_private_key:
                insurer_account = self.ledger.get_signer(insurer_private_key).address
            credential = build_policy_credential(request, insurer_account, issuer_did)
            beneficiary = beneficiary or request.patient_address
            if _missing(coverageAmount=coverage_amount):
                coverage_amount = request.coverage_amount

        service = await self.credentials.require_ready()
        vc = await service.issue(credential, issuer_did)
        cid = await self.blobs.put(json.dumps(vc).encode("utf-8"), filename="vc.json")
        log.info(f"Issued VC by {issuer_did} stored at {cid}", extra={"cid": cid})

        result = IssueVCResult(vc=vc, cid=cid, policy_ref=policy_reference(vc, cid))

        if create_onchain:
            try:
                issuance = await self.issue_policy(insurer_private_key, beneficiary, coverage_amount)
            except InsureChainError as e:
                result.warnings.append(SoftWarning(e.code, f"On-chain policy not created: {e.message}"))
            else:
                result.tx_hash = issuance.tx_hash
                result.onchain_policy_id = issuance.policy_id
                if issuance.policy_id is None:
                    result.warnings.append(SoftWarning(
                        "EVENT_NOT_FOUND",
                        f"PolicyIssued event missing from {issuance.tx_hash}",
                    ))

        request = self._linked_request(result.policy_ref)
        mismatch = _subject_mismatch(vc, request) if request is not None else None
        if mismatch:
            result.warnings.append(SoftWarning(
                "REQUEST_SUBJECT_MISMATCH",
                f"Policy request {request.id} not linked: {mismatch}",
            ))
        elif request is not None:
            result.request_id = request.id
            changed = self.queue.update_status(
                request.id,
                RequestStatus.ISSUED,
                vc_cid=cid,
                onchain_policy_id=result.onchain_policy_id,
            )
            if not changed:
                result.warnings.append(SoftWarning(
                    "REQUEST_ALREADY_ISSUED",
                    f"Policy request {request.id} was already issued",
                ))

        self.queue.record_credential(
            result.policy_ref,
            vc,
            cid,
            request_id=result.request_id,
            onchain_policy_id=result.onchain_policy_id,
            vc_jwt=(vc.get("proof") or {}).get("jwt"),
        )

        for warning in result.warnings:
            log.warning(f"issue_vc {cid}: {warning.code}: {warning.message}")
        self.audit.log(
            action="vc.issue",
            principal=issuer_did,
            resource=cid,
            status="warning" if result.warnings else "success",
            details={
                "policy_ref": result.policy_ref,
                "onchain_policy_id": result.onchain_policy_id,
                "warnings": [w.code for w in result.warnings],
            },
        )
        return result

    def _linked_request(self, policy_ref: str) -> Optional[PolicyRequest]:
        if not _is_decimal(policy_ref):
            return None
        return self.queue.get(int(policy_ref))

    def get_vc(self, policy_ref: str) -> IssuedCredential:
        issued = self.queue.get_credential(policy_ref)
        if issued is None:
            raise NotFoundError(f"VC not found for policy {policy_ref}")
        return issued

    # -------------------------------------------------------------------------
    # Policy requests
    # -------------------------------------------------------------------------

    def submit_policy_request(
        self,
        patient_did: str,
        patient_address: str,
        coverage_amount: Union[int, str],
        details: Optional[dict[str, Any]] = None,
    ) -> PolicyRequest:
        missing = _missing(
            patientDid=patient_did,
            patientAddress=patient_address,
            coverageAmount=coverage_amount,
        )
        if missing:
            raise MissingField(missing)
        amount = parse_uint(coverage_amount, "coverageAmount")

        request = self.queue.append(patient_did, patient_address, str(amount), details)
        self.audit.log(
            action="policy_request.create",
            principal=patient_did,
            resource=str(request.id),
            details={"coverage_amount": request.coverage_amount},
        )
        return request

    def list_policy_requests(self) -> list[PolicyRequest]:
        return self.queue.list()

    # -------------------------------------------------------------------------
    # Blobs
    # -------------------------------------------------------------------------

    async def upload_file(self, data: bytes, filename: Optional[str] = None) -> str:
        if not data:
            raise MissingField("data")
        return await self.blobs.put(data, filename=filename or "uploaded-file")

    async def get_file(self, cid: str) -> bytes:
        if not cid:
            raise MissingField("cid")
        return await self.blobs.get(cid)

    # -------------------------------------------------------------------------
    # Ledger writes
    # -------------------------------------------------------------------------

    async def register_identity(
        self,
        private_key: str,
        account: str,
        did: str,
        role: Union[int, str],
    ) -> str:
        """Record ``account``'s DID and role in the IdentityRegistry.

        Returns:
            The transaction hash.
        """
        missing = _missing(privateKey=private_key, account=account, did=did, role=role)
        if missing:
            raise MissingField(missing)
        account = to_address(account)
        identity_role = parse_role(role)

        signer = self.ledger.get_signer(private_key)
        registry = self.ledger.get_contract(IDENTITY_REGISTRY, signer)
        receipt = await self.ledger.submit_and_confirm(
            registry, "register", account, did, int(identity_role)
        )
        self.audit.log(
            action="onchain.register",
            principal=signer.address,
            resource=receipt.tx_hash,
            details={"account": account, "did": did, "role": identity_role.name.lower()},
        )
        return receipt.tx_hash

    async def issue_policy(
        self,
        private_key: Optional[str],
        beneficiary: Optional[str],
        coverage_amount: Optional[Union[int, str]],
    ) -> PolicyIssuance:
        """Create an on-chain policy; ``policy_id`` is None if the event is missing."""
        missing = _missing(
            privateKey=private_key,
            beneficiary=beneficiary,
            coverageAmount=coverage_amount,
        )
        if missing:
            raise MissingField(missing)
        beneficiary = to_address(beneficiary)
        amount = parse_uint(coverage_amount, "coverageAmount")

        signer = self.ledger.get_signer(private_key)
        contract = self.ledger.get_contract(POLICY_CONTRACT, signer)
        receipt = await self.ledger.submit_and_confirm(contract, "issuePolicy", beneficiary, amount)

        event = self.ledger.decode_event(contract, receipt, "PolicyIssued")
        policy_id = str(event.args["policyId"]) if isinstance(event, EventFound) else None

        self.audit.log(
            action="onchain.issue_policy",
            principal=signer.address,
            resource=receipt.tx_hash,
            status="success" if policy_id is not None else "warning",
            details={"beneficiary": beneficiary, "coverage_amount": str(amount), "policy_id": policy_id},
        )
        return PolicyIssuance(tx_hash=receipt.tx_hash, policy_id=policy_id)

    async def submit_claim(
        self,
        private_key: str,
        policy_id: Union[int, str],
        beneficiary: str,
        insurer: str,
        evidence_hash: str,
        vc_cid: str,
        amount: Union[int, str],
    ) -> ClaimSubmission:
        """Submit a claim against a policy.

        The VC at ``vc_cid`` is fetched and verified first. In lenient mode
        any problem is returned as a warning and the claim is still sent.

        Raises:
            MissingField: A business field is absent (before any network call).
            CredentialVerificationFailed: Strict mode and the VC did not check out.
        """
        missing = _missing(
            privateKey=private_key,
            policyId=policy_id,
            beneficiary=beneficiary,
            insurer=insurer,
            ipfsHash=evidence_hash,
            vcCid=vc_cid,
            amount=amount,
        )
        if missing:
            raise MissingField(missing)
        policy_number = parse_uint(policy_id, "policyId")
        claim_amount = parse_uint(amount, "amount")
        beneficiary = to_address(beneficiary)
        insurer = to_address(insurer)
        signer = self.ledger.get_signer(private_key)

        warnings = await self._check_claim_credential(vc_cid, beneficiary, insurer)
        if warnings and self.strict_vc_verification:
            self.audit.log(
                action="claim.submit",
                principal=signer.address,
                resource=vc_cid,
                status="error",
                details={"warnings": [w.code for w in warnings]},
            )
            raise CredentialVerificationFailed("; ".join(w.message for w in warnings))

        contract = self.ledger.get_contract(CLAIM_CONTRACT, signer)
        receipt = await self.ledger.submit_and_confirm(
            contract,
            "submitClaim",
            policy_number,
            beneficiary,
            insurer,
            evidence_hash,
            vc_cid,
            claim_amount,
        )

        event = self.ledger.decode_event(contract, receipt, "ClaimSubmitted")
        claim_id = str(event.args["claimId"]) if isinstance(event, EventFound) else None
        if claim_id is None:
            warnings.append(SoftWarning(
                "EVENT_NOT_FOUND",
                f"ClaimSubmitted event missing from {receipt.tx_hash}",
            ))

        for warning in warnings:
            log.warning(f"submit_claim {receipt.tx_hash}: {warning.code}: {warning.message}")
        self.audit.log(
            action="claim.submit",
            principal=signer.address,
            resource=claim_id or receipt.tx_hash,
            status="warning" if warnings else "success",
            details={
                "policy_id": str(policy_number),
                "vc_cid": vc_cid,
                "amount": str(claim_amount),
                "warnings": [w.code for w in warnings],
            },
        )
        return ClaimSubmission(tx_hash=receipt.tx_hash, claim_id=claim_id, warnings=warnings)

    async def _check_claim_credential(
        self,
        vc_cid: str,
        beneficiary: str,
        insurer: str,
    ) -> list[SoftWarning]:
        """Fetch, verify and cross-check the VC a claim references.

        Never raises for credential problems; returns them as warnings.
        """
        warnings: list[SoftWarning] = []
        try:
            vc = json.loads(await self.blobs.get(vc_cid))
        except InsureChainError as e:
            return [SoftWarning("VC_FETCH_FAILED", f"Could not fetch VC {vc_cid}: {e.message}")]
        except ValueError as e:
            return [SoftWarning("VC_MALFORMED", f"VC at {vc_cid} is not valid JSON: {e}")]
        if not isinstance(vc, dict):
            return [SoftWarning("VC_MALFORMED", f"VC at {vc_cid} is not a JSON object")]

        try:
            service = await self.credentials.require_ready()
            outcome = await service.verify((vc.get("proof") or {}).get("jwt") or vc)
        except InsureChainError as e:
            warnings.append(SoftWarning("VC_VERIFICATION_UNAVAILABLE", e.message))
        else:
            if not outcome.get("verified"):
                error = outcome.get("error")
                detail = error.get("message") if isinstance(error, dict) else error
                warnings.append(SoftWarning(
                    "VC_NOT_VERIFIED",
                    f"VC {vc_cid} failed verification" + (f": {detail}" if detail else ""),
                ))

        subject = vc.get("credentialSubject")
        subject = subject if isinstance(subject, dict) else {}
        if "beneficiary" in subject and not _same_address(subject["beneficiary"], beneficiary):
            warnings.append(SoftWarning(
                "VC_SUBJECT_MISMATCH",
                f"VC beneficiary {subject['beneficiary']} does not match claim beneficiary {beneficiary}",
            ))
        if "insurer" in subject and not _same_address(subject["insurer"], insurer):
            warnings.append(SoftWarning(
                "VC_ISSUER_MISMATCH",
                f"VC insurer {subject['insurer']} does not match claim insurer {insurer}",
            ))
        if _vc_issuer(vc) is None:
            warnings.append(SoftWarning("VC_ISSUER_MISSING", f"VC {vc_cid} names no issuer"))

        return warnings

    async def insurer_action(
        self,
        private_key: str,
        claim_id: Union[int, str],
        action: str,
        reason: Optional[str] = None,
    ) -> InsurerActionResult:
        """Apply an insurer action to a claim.

        Raises:
            MissingField / InvalidAction / MissingReason: Bad input.
            NotFoundError: The claim does not exist.
            InvalidTransition: The claim's current state forbids the action.
            TransactionReverted: The ledger refused it (e.g. a concurrent
                transition won the race).
        """
        missing = _missing(privateKey=private_key, claimId=claim_id, action=action)
        if missing:
            raise MissingField(missing)
        command = parse_insurer_command(action, reason)
        claim_number = parse_uint(claim_id, "claimId")

        signer = self.ledger.get_signer(private_key)
        contract = self.ledger.get_contract(CLAIM_CONTRACT, signer)
        claim = await self._read_claim(contract, claim_number)
        next_status = check_transition(claim.status, command.action)

        return await self._dispatch(contract, claim, command, next_status, signer.address)

    async def _dispatch(
        self,
        contract,
        claim: ClaimRecord,
        command: InsurerCommand,
        next_status: ClaimStatus,
        principal: str,
    ) -> InsurerActionResult:
        method = command.action.value
        try:
            receipt = await self.ledger.submit_and_confirm(
                contract, method, *command.contract_args(claim.claim_id)
            )
        except InsureChainError as e:
            self.audit.log(
                action=f"claim.{method}",
                principal=principal,
                resource=str(claim.claim_id),
                status="error",
                details={"code": e.code, "from": claim.status.label},
            )
            raise

        self.audit.log(
            action=f"claim.{method}",
            principal=principal,
            resource=str(claim.claim_id),
            details={"tx_hash": receipt.tx_hash, "from": claim.status.label, "to": next_status.label},
        )
        return InsurerActionResult(tx_hash=receipt.tx_hash, action=method, status=next_status)

    # -------------------------------------------------------------------------
    # Ledger reads
    # -------------------------------------------------------------------------

    async def _read_claim(self, contract, claim_id: int) -> ClaimRecord:
        values = await self.ledger.call(contract, "getClaim", claim_id)
        claim = ClaimRecord.from_call(claim_id, values)
        if not claim.exists:
            raise NotFoundError(f"Claim not found: {claim_id}")
        return claim

    async def get_claim(self, claim_id: Union[int, str]) -> ClaimRecord:
        contract = self.ledger.get_contract(CLAIM_CONTRACT)
        return await self._read_claim(contract, parse_uint(claim_id, "claimId"))

    async def get_policy(self, policy_id: Union[int, str]) -> dict[str, Any]:
        number = parse_uint(policy_id, "policyId")
        contract = self.ledger.get_contract(POLICY_CONTRACT)
        pid, beneficiary, insurer, coverage_amount, active = await self.ledger.call(
            contract, "getPolicy", number
        )
        if beneficiary == ZERO_ADDRESS:
            raise NotFoundError(f"Policy not found: {number}")
        return {
            "policyId": str(pid),
            "beneficiary": beneficiary,
            "insurer": insurer,
            "coverageAmount": str(coverage_amount),
            "active": bool(active),
        }


_orchestrator: Optional[Orchestrator] = None


def get_orchestrator() -> Orchestrator:
    """Get or create the orchestrator singleton."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = Orchestrator(
            queue=get_request_queue(),
            credentials=get_credential_handle(),
            blobs=get_blob_store(),
            ledger=get_ledger_gateway(),
        )
    return _orchestrator


def reset_orchestrator() -> None:
    """Reset the singleton (for testing)."""
    global _orchestrator
    _orchestrator = None
