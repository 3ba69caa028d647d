"""
Solidity sources used by the deterministic local generator.

Templates are ``string.Template`` strings; ``$name`` is the contract name and
``$purpose`` a one-line NatSpec description. They are self-contained so they
compile without external contract libraries.
"""

from string import Template

FUND_CAPTURE = Template(
    """// SPDX-License-Identifier: MIT
pragma solidity ^0.8.19;

/// @title $name
/// @notice $purpose
contract $name {
    address public owner;
    bool public paused;
    bool private locked;
    uint256 public captureThreshold;
    uint256 public totalCaptured;

    mapping(address => bool) public flagged;
    mapping(address => uint256) public captured;

    event AttackerFlagged(address indexed attacker, uint256 value);
    event FundsCaptured(address indexed attacker, uint256 amount);
    event FundsRecovered(address indexed to, uint256 amount);
    event Paused(bool state);

    modifier onlyOwner() {
        require(msg.sender == owner, "not owner");
        _;
    }

    modifier nonReentrant() {
        require(!locked, "reentrant call");
        locked = true;
        _;
        locked = false;
    }

    modifier whenNotPaused() {
        require(!paused, "paused");
        _;
    }

    constructor() {
        owner = msg.sender;
        captureThreshold = 0.01 ether;
    }

    receive() external payable {
        _inspect(msg.sender, msg.value);
    }

    function deposit() external payable whenNotPaused {
        _inspect(msg.sender, msg.value);
    }

    function withdraw(uint256 amount) external nonReentrant whenNotPaused {
        require(!flagged[msg.sender], "address flagged");
        require(amount > 0, "zero amount");
        require(address(this).balance >= amount, "insufficient balance");
        (bool ok, ) = payable(msg.sender).call{value: amount}("");
        require(ok, "transfer failed");
    }

    function flag(address attacker) external onlyOwner {
        flagged[attacker] = true;
        emit AttackerFlagged(attacker, 0);
    }

    function setCaptureThreshold(uint256 threshold) external onlyOwner {
        require(threshold > 0, "zero threshold");
        captureThreshold = threshold;
    }

    function recover(address payable to, uint256 amount) external onlyOwner nonReentrant {
        require(to != address(0), "zero address");
        require(amount <= totalCaptured, "exceeds captured");
        totalCaptured -= amount;
        (bool ok, ) = to.call{value: amount}("");
        require(ok, "transfer failed");
        emit FundsRecovered(to, amount);
    }

    function setPaused(bool state) external onlyOwner {
        paused = state;
        emit Paused(state);
    }

    function _inspect(address sender, uint256 value) internal {
        if (flagged[sender] || (sender.code.length > 0 && value >= captureThreshold)) {
            flagged[sender] = true;
            captured[sender] += value;
            totalCaptured += value;
            emit AttackerFlagged(sender, value);
            emit FundsCaptured(sender, value);
        }
    }
}
"""
)

FLOW_WATCHER = Template(
    """// SPDX-License-Identifier: MIT
pragma solidity ^0.8.19;

/// @title $name
/// @notice $purpose
contract $name {
    address public owner;
    bool public paused;
    uint256 public maxFlowPerBlock;
    uint256 public currentBlock;
    uint256 public flowInBlock;

    event FlowRecorded(address indexed source, uint256 amount, uint256 blockFlow);
    event FlowLimitExceeded(address indexed source, uint256 blockFlow);
    event LimitUpdated(uint256 maxFlowPerBlock);
    event Paused(bool state);

    modifier onlyOwner() {
        require(msg.sender == owner, "not owner");
        _;
    }

    modifier whenNotPaused() {
        require(!paused, "paused");
        _;
    }

    constructor() {
        owner = msg.sender;
        maxFlowPerBlock = 100 ether;
    }

    function record(uint256 amount) external whenNotPaused returns (bool healthy) {
        require(amount > 0, "zero amount");
        if (block.number != currentBlock) {
            currentBlock = block.number;
            flowInBlock = 0;
        }
        flowInBlock += amount;
        emit FlowRecorded(msg.sender, amount, flowInBlock);
        healthy = flowInBlock <= maxFlowPerBlock;
        if (!healthy) {
            paused = true;
            emit FlowLimitExceeded(msg.sender, flowInBlock);
            emit Paused(true);
        }
    }

    function setMaxFlowPerBlock(uint256 limit) external onlyOwner {
        require(limit > 0, "zero limit");
        maxFlowPerBlock = limit;
        emit LimitUpdated(limit);
    }

    function setPaused(bool state) external onlyOwner {
        paused = state;
        emit Paused(state);
    }
}
"""
)

GUARD = Template(
    """// SPDX-License-Identifier: MIT
pragma solidity ^0.8.19;

/// @title $name
/// @notice $purpose
contract $name {
    address public owner;
    bool public paused;
    bool private locked;
    uint256 public incidentCount;

    mapping(address => bool) public authorized;
    mapping(address => uint256) public balances;

    event Deposited(address indexed account, uint256 amount);
    event Withdrawn(address indexed account, uint256 amount);
    event IncidentReported(address indexed reporter, string reason);
    event AuthorizationChanged(address indexed account, bool allowed);
    event Paused(bool state);

    modifier onlyOwner() {
        require(msg.sender == owner, "not owner");
        _;
    }

    modifier onlyAuthorized() {
        require(authorized[msg.sender] || msg.sender == owner, "not authorized");
        _;
    }

    modifier nonReentrant() {
        require(!locked, "reentrant call");
        locked = true;
        _;
        locked = false;
    }

    modifier whenNotPaused() {
        require(!paused, "paused");
        _;
    }

    constructor() {
        owner = msg.sender;
        authorized[msg.sender] = true;
    }

    function deposit() external payable whenNotPaused {
        require(msg.value > 0, "zero value");
        balances[msg.sender] += msg.value;
        emit Deposited(msg.sender, msg.value);
    }

    function withdraw(uint256 amount) external nonReentrant whenNotPaused {
        require(balances[msg.sender] >= amount, "insufficient balance");
        balances[msg.sender] -= amount;
        (bool ok, ) = payable(msg.sender).call{value: amount}("");
        require(ok, "transfer failed");
        emit Withdrawn(msg.sender, amount);
    }

    function reportIncident(string calldata reason) external onlyAuthorized {
        incidentCount += 1;
        paused = true;
        emit IncidentReported(msg.sender, reason);
        emit Paused(true);
    }

    function setAuthorized(address account, bool allowed) external onlyOwner {
        require(account != address(0), "zero address");
        authorized[account] = allowed;
        emit AuthorizationChanged(account, allowed);
    }

    function setPaused(bool state) external onlyOwner {
        paused = state;
        emit Paused(state);
    }
}
"""
)
