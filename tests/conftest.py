"""Shared fixtures: small Go modules with vendored SDK packages."""

from pathlib import Path

import pytest

from lro_scan.src.lro_scan.inputs.directory_scanning import GoLoader, read_go_mod

TRACK1_SDK = "github.com/Azure/azure-sdk-for-go/services/compute/mgmt/2021-03-01/compute"
PANDORA_SDK = "github.com/hashicorp/go-azure-sdk/resource-manager/compute/2022-03-01/virtualmachines"

GO_MOD = """module example.com/app

go 1.21
"""

TRACK1_COMPUTE = """package compute

import (
	"context"

	"github.com/Azure/go-autorest/autorest"
	"github.com/Azure/go-autorest/autorest/azure"
)

type BaseClient struct {
	autorest.Client
	BaseURI        string
	SubscriptionID string
}

type VirtualMachinesClient struct {
	BaseClient
}

func NewVirtualMachinesClient(subscriptionID string) VirtualMachinesClient {
	return VirtualMachinesClient{BaseClient{SubscriptionID: subscriptionID}}
}

type VirtualMachinesCreateOrUpdateFuture struct {
	azure.FutureAPI
	Result func(VirtualMachinesClient) (VirtualMachine, error)
}

type VirtualMachine struct {
	autorest.Response
	Name *string
}

type VirtualMachineListResult struct {
	autorest.Response
	Future azure.FutureAPI
}

func (client VirtualMachinesClient) CreateOrUpdate(ctx context.Context, resourceGroupName string, vmName string, parameters VirtualMachine) (result VirtualMachinesCreateOrUpdateFuture, err error) {
	return
}

func (client VirtualMachinesClient) Get(ctx context.Context, resourceGroupName string, vmName string) (result VirtualMachine, err error) {
	return
}

func (client VirtualMachinesClient) List(ctx context.Context, resourceGroupName string) (result VirtualMachineListResult, err error) {
	return
}
"""

TRACK1_APP = """package vm

import (
	"context"

	"github.com/Azure/azure-sdk-for-go/services/compute/mgmt/2021-03-01/compute"
)

type Manager struct {
	client compute.VirtualMachinesClient
}

func Create(ctx context.Context, subscriptionID string) error {
	client := compute.NewVirtualMachinesClient(subscriptionID)
	_, err := client.CreateOrUpdate(ctx, "rg", "vm", compute.VirtualMachine{})
	if err != nil {
		return err
	}
	future, err := client.CreateOrUpdate(ctx, "rg", "vm", compute.VirtualMachine{})
	_ = future
	return err
}

func (m *Manager) Recreate(ctx context.Context) error {
	_, err := m.client.CreateOrUpdate(ctx, "rg", "vm", compute.VirtualMachine{})
	return err
}

func List(ctx context.Context, client compute.VirtualMachinesClient) error {
	_, err := client.List(ctx, "rg")
	_, err = client.Get(ctx, "rg", "vm")
	return err
}
"""

PANDORA_CLIENT = """package virtualmachines

import (
	"github.com/hashicorp/go-azure-sdk/sdk/client/resourcemanager"
)

type VirtualMachinesClient struct {
	Client *resourcemanager.Client
}

func NewVirtualMachinesClientWithBaseURI(endpoint string) (*VirtualMachinesClient, error) {
	return &VirtualMachinesClient{}, nil
}

type VirtualMachineId struct {
	SubscriptionId    string
	ResourceGroupName string
	VirtualMachineName string
}

type VirtualMachine struct {
	Location string
}
"""

PANDORA_METHODS = """package virtualmachines

import (
	"context"

	"github.com/hashicorp/go-azure-sdk/sdk/client/pollers"
)

type CreateOrUpdateOperationResponse struct {
	Poller pollers.Poller
	Model  *VirtualMachine
}

type DeleteOperationResponse struct {
	Poller pollers.Poller
}

type UpdateOperationResponse struct {
	Model *VirtualMachine
}

func (c VirtualMachinesClient) CreateOrUpdate(ctx context.Context, id VirtualMachineId, input VirtualMachine) (result CreateOrUpdateOperationResponse, err error) {
	return
}

func (c VirtualMachinesClient) CreateOrUpdateThenPoll(ctx context.Context, id VirtualMachineId, input VirtualMachine) error {
	return nil
}

func (c VirtualMachinesClient) Delete(ctx context.Context, id VirtualMachineId) (result DeleteOperationResponse, err error) {
	return
}

func (c VirtualMachinesClient) DeleteThenPoll(ctx context.Context, id VirtualMachineId) error {
	return nil
}

func (c VirtualMachinesClient) Update(ctx context.Context, id VirtualMachineId, input VirtualMachine) (result UpdateOperationResponse, err error) {
	return
}

func (c VirtualMachinesClient) deleteInternal(ctx context.Context) error {
	return nil
}

func (c VirtualMachinesClient) Get(ctx context.Context, id VirtualMachineId) (result UpdateOperationResponse, err error) {
	return
}

type RestorePointsClient struct{}

func (c *RestorePointsClient) UpdateThenPoll(ctx context.Context) error {
	return nil
}
"""

PANDORA_APP = """package pandora

import (
	"context"

	"github.com/hashicorp/go-azure-sdk/resource-manager/compute/2022-03-01/virtualmachines"
)

type Resource struct {
	Client *virtualmachines.VirtualMachinesClient
}

func (r Resource) Create(ctx context.Context, id virtualmachines.VirtualMachineId) error {
	if _, err := r.Client.CreateOrUpdate(ctx, id, virtualmachines.VirtualMachine{}); err != nil {
		return err
	}
	if err := r.Client.CreateOrUpdateThenPoll(ctx, id, virtualmachines.VirtualMachine{}); err != nil {
		return err
	}
	return nil
}

func (r Resource) Update(ctx context.Context, id virtualmachines.VirtualMachineId) error {
	_, err := r.Client.Update(ctx, id, virtualmachines.VirtualMachine{})
	return err
}

func (r Resource) Delete(ctx context.Context, id virtualmachines.VirtualMachineId) error {
	deleteFuture, err := r.Client.Delete(ctx, id)
	_ = deleteFuture
	return err
}

func Cleanup(ctx context.Context, client *virtualmachines.VirtualMachinesClient, id virtualmachines.VirtualMachineId) {
	client.Delete(ctx, id)
}
"""

PANDORA_APP_2 = """package jobs

import (
	"context"

	"github.com/hashicorp/go-azure-sdk/resource-manager/compute/2022-03-01/virtualmachines"
)

func Purge(ctx context.Context, ids []virtualmachines.VirtualMachineId) error {
	client, err := virtualmachines.NewVirtualMachinesClientWithBaseURI("https://management.azure.com")
	if err != nil {
		return err
	}
	for _, id := range ids {
		if _, err := client.Delete(ctx, id); err != nil {
			return err
		}
	}
	_, err = client.CreateOrUpdate(ctx, ids[0], virtualmachines.VirtualMachine{})
	return err
}
"""


def write_files(root: Path, files: dict[str, str]) -> Path:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


def position_of(source: str, line_marker: str, token: str) -> tuple[int, int]:
    """1-based (line, column) of ``token`` on the first line containing ``line_marker``."""
    for idx, line in enumerate(source.splitlines()):
        if line_marker in line:
            return idx + 1, line.index(token) + 1
    raise AssertionError(f"{line_marker!r} not found")


@pytest.fixture
def go_module(tmp_path: Path) -> Path:
    return write_files(tmp_path / "app", {
        "go.mod": GO_MOD,
        f"vendor/{TRACK1_SDK}/client.go": TRACK1_COMPUTE,
        f"vendor/{PANDORA_SDK}/client.go": PANDORA_CLIENT,
        f"vendor/{PANDORA_SDK}/methods.go": PANDORA_METHODS,
        "internal/vm/vm.go": TRACK1_APP,
        "internal/pandora/pandora.go": PANDORA_APP,
        "internal/jobs/jobs.go": PANDORA_APP_2,
    })


@pytest.fixture
def loader(go_module: Path, tmp_path: Path) -> GoLoader:
    return GoLoader(read_go_mod(go_module), mod_cache=tmp_path / "modcache")
